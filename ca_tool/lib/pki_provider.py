"""Pluggable PKI toolkit interface.

The CA store, issuer and inspector only talk to a PKIProvider; the concrete
provider decides whether X.509 work happens in-process (``cryptography``) or
in an ``openssl`` subprocess. All operations are file based: inputs and
outputs are paths inside the CA Directory, which stays the single source of
truth between invocations.
"""

from pathlib import Path
from typing import Protocol

from ca_tool.lib.config import CAConfig, DistinguishedName
from ca_tool.lib.models import CAPaths, CertificateSummary, VerificationResult


class PKIProvider(Protocol):
    """Operations the CA tool needs from an X.509 toolkit.

    Every method raises SigningFailedError when the toolkit fails.
    """

    def gen_key(self, key_path: Path, bits: int) -> None:
        """Write a new RSA private key (PEM) to key_path."""
        ...

    def gen_csr(self, key_path: Path, config_path: Path, csr_path: Path) -> None:
        """Write a CSR for key_path using the subject and extensions in config_path."""
        ...

    def self_sign(
        self,
        key_path: Path,
        config_path: Path,
        cert_path: Path,
        subject: DistinguishedName,
        days: int,
        digest: str,
    ) -> None:
        """Write a self-signed CA certificate using the v3_ca section of config_path."""
        ...

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
        """Sign csr_path with the CA, advancing the CA's serial file."""
        ...

    def inspect(self, cert_path: Path) -> CertificateSummary:
        """Return subject, issuer, validity window and serial of a certificate."""
        ...

    def render_text(self, cert_path: Path) -> str:
        """Return a full human-readable dump of a certificate."""
        ...

    def verify(self, cert_path: Path, ca_cert_path: Path) -> VerificationResult:
        """Verify cert_path against ca_cert_path; a failed check is not an error."""
        ...


def get_provider(config: CAConfig) -> PKIProvider:
    """Return the provider selected by config.provider."""
    if config.provider == "openssl":
        from ca_tool.lib.openssl_provider import OpenSSLProvider

        return OpenSSLProvider(openssl_path=config.openssl_path)

    from ca_tool.lib.native_provider import CryptographyProvider

    return CryptographyProvider()
