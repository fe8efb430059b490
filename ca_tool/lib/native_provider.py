"""In-process PKI provider backed by the cryptography library."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ca_tool.lib.cert_utils import (
    deserialize_certificate,
    deserialize_csr,
    deserialize_private_key,
    format_serial,
    generate_private_key,
    generate_serial_number,
    hash_algorithm,
    render_certificate_text,
    serialize_certificate,
    serialize_csr,
    serialize_private_key,
    summarize_certificate,
    verify_certificate,
)
from ca_tool.lib.certificate_builder import CertificateBuilder
from ca_tool.lib.config import DistinguishedName
from ca_tool.lib.errors import SigningFailedError
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CAPaths, CertificateSummary, VerificationResult
from ca_tool.lib.signing_policy import (
    CA_EXTENSIONS_SECTION,
    parse_extensions,
    read_config,
    read_request_config,
)


@contextmanager
def _toolkit_errors(action: str) -> Iterator[None]:
    """Translate cryptography/IO failures into SigningFailedError."""
    try:
        yield
    except (ValueError, TypeError, OSError, KeyError, OverflowError) as e:
        raise SigningFailedError(f"{action} failed", diagnostic=str(e)) from e


def _write_private(path: Path, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def next_serial(serial_path: Path) -> int:
    """Read the CA serial file, increment it, write it back and return the new value.

    Mirrors `openssl x509 -CAserial`: the file always holds the last serial used.
    """
    current = int(serial_path.read_text().strip(), 16)
    serial = current + 1
    serial_path.write_text(format_serial(serial) + "\n")
    return serial


class CryptographyProvider:
    """PKIProvider that performs all X.509 work with `cryptography`."""

    def gen_key(self, key_path: Path, bits: int) -> None:
        """Generate an RSA key and write it as PEM, readable by the owner only."""
        with _toolkit_errors("key generation"):
            _write_private(key_path, serialize_private_key(generate_private_key(bits)))

    def gen_csr(self, key_path: Path, config_path: Path, csr_path: Path) -> None:
        """Build a CSR from the request config.

        Args:
            key_path: PEM private key to sign the request with
            config_path: Request config holding subject, extensions and default_md
            csr_path: Destination for the PEM CSR

        Raises:
            SigningFailedError: If the key or config cannot be used
        """
        with _toolkit_errors("CSR generation"):
            request = read_request_config(config_path)
            key = deserialize_private_key(key_path.read_bytes())
            csr = CertificateBuilder.build_csr(
                subject_dn=request.subject,
                private_key=key,
                profile=request.extensions,
                algorithm=hash_algorithm(request.digest),
            )
            csr_path.write_bytes(serialize_csr(csr))

    def self_sign(
        self,
        key_path: Path,
        config_path: Path,
        cert_path: Path,
        subject: DistinguishedName,
        days: int,
        digest: str,
    ) -> None:
        """Write a self-signed root certificate with the config's v3_ca extensions."""
        with _toolkit_errors("CA self-signing"):
            profile = parse_extensions(read_config(config_path), CA_EXTENSIONS_SECTION)
            key = deserialize_private_key(key_path.read_bytes())
            cert = CertificateBuilder.build_root_ca(
                subject_dn=subject,
                private_key=key,
                validity_days=days,
                profile=profile,
                serial_number=generate_serial_number(),
                algorithm=hash_algorithm(digest),
            )
            cert_path.write_bytes(serialize_certificate(cert))

    def sign(
        self,
        csr_path: Path,
        ca: CAPaths,
        config_path: Path,
        extensions_section: str,
        cert_path: Path,
        days: int,
        digest: str,
    ) -> None:
        """Sign a CSR with the CA key.

        The serial comes from the CA serial file, which is advanced before signing.

        Args:
            csr_path: PEM CSR to sign
            ca: Paths of the issuing CA
            config_path: Config holding the extensions section to apply
            extensions_section: Name of that section
            cert_path: Destination for the PEM certificate
            days: Validity period in days
            digest: Signature hash name, e.g. sha256

        Raises:
            SigningFailedError: If the CSR is invalid or the toolkit fails
        """
        with _toolkit_errors("certificate signing"):
            profile = parse_extensions(read_config(config_path), extensions_section)
            csr = deserialize_csr(csr_path.read_bytes())
            ca_key = deserialize_private_key(ca.key_path.read_bytes())
            ca_cert = deserialize_certificate(ca.cert_path.read_bytes())
            serial = next_serial(ca.serial_path)
            LOGGER.debug("Signing with serial %s", format_serial(serial))
            cert = CertificateBuilder.build_server_certificate(
                csr=csr,
                issuer_cert=ca_cert,
                issuer_key=ca_key,
                validity_days=days,
                profile=profile,
                serial_number=serial,
                algorithm=hash_algorithm(digest),
            )
            cert_path.write_bytes(serialize_certificate(cert))

    def inspect(self, cert_path: Path) -> CertificateSummary:
        """Return subject, issuer, validity window and serial."""
        with _toolkit_errors(f"reading {cert_path}"):
            return summarize_certificate(deserialize_certificate(cert_path.read_bytes()))

    def render_text(self, cert_path: Path) -> str:
        """Return an openssl-like text dump of the certificate."""
        with _toolkit_errors(f"reading {cert_path}"):
            return render_certificate_text(deserialize_certificate(cert_path.read_bytes()))

    def verify(self, cert_path: Path, ca_cert_path: Path) -> VerificationResult:
        """Check signature, CA flag and validity windows.

        Returns:
            VerificationResult; a failed check is reported, not raised
        """
        with _toolkit_errors("verification"):
            cert = deserialize_certificate(cert_path.read_bytes())
            ca_cert = deserialize_certificate(ca_cert_path.read_bytes())
        result = verify_certificate(cert, ca_cert)
        if result.ok:
            return VerificationResult(ok=True, detail=f"{cert_path}: OK")
        return result

