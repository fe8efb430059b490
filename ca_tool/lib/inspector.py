"""Listing and checking of CA and server certificates."""

from pathlib import Path

from ca_tool.lib.config import CAConfig
from ca_tool.lib.errors import CAToolError, InvalidInputError, NotFoundError
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CAPaths, CertificateListing, CheckResult, ListingEntry
from ca_tool.lib.pki_provider import PKIProvider, get_provider


class Inspector:
    """Read-only views over a CA Directory."""

    def __init__(self, config: CAConfig, provider: PKIProvider | None = None) -> None:
        self.config = config
        self.provider = provider or get_provider(config)

    def list_certificates(self, ca_directory: str | Path) -> CertificateListing:
        """Summarize the CA certificate and every issued server certificate.

        A missing ca.crt is reported as ca_summary=None. A server certificate
        that cannot be read is recorded with its error and enumeration goes on.

        Raises:
            InvalidInputError: If ca_directory is empty
            NotFoundError: If ca_directory does not exist
        """
        if not ca_directory or not str(ca_directory).strip():
            raise InvalidInputError("CA directory is required")
        root = Path(ca_directory)
        if not root.is_dir():
            raise NotFoundError(f"CA directory not found: {root}")

        paths = CAPaths.for_directory(root)
        ca_summary = self.provider.inspect(paths.cert_path) if paths.cert_path.is_file() else None
        listing = CertificateListing(ca_directory=root, ca_summary=ca_summary)

        if not paths.servers_dir.is_dir():
            return listing

        for server_dir in sorted(p for p in paths.servers_dir.iterdir() if p.is_dir()):
            cert_path = server_dir / f"{server_dir.name}.crt"
            if not cert_path.is_file():
                continue
            entry = ListingEntry(name=server_dir.name, cert_path=cert_path)
            try:
                entry.summary = self.provider.inspect(cert_path)
            except CAToolError as e:
                LOGGER.warning("Could not read certificate %s: %s", cert_path, e)
                entry.error = str(e)
            listing.servers.append(entry)

        return listing

    def check_certificate(self, cert_path: str | Path) -> CheckResult:
        """Decode a certificate and, if its CA can be found, verify the chain.

        The CA certificate is looked up two directories above the certificate's
        own directory (servers/<name>/<name>.crt -> ca.crt). When it is absent
        verification is skipped.

        Raises:
            InvalidInputError: If cert_path is empty
            NotFoundError: If cert_path does not exist
            SigningFailedError: If the certificate cannot be decoded
        """
        if not cert_path or not str(cert_path).strip():
            raise InvalidInputError("certificate file path is required")
        path = Path(cert_path)
        if not path.is_file():
            raise NotFoundError(f"certificate not found: {path}")

        result = CheckResult(cert_path=path, text=self.provider.render_text(path))

        ca_cert_path = path.parent / ".." / ".." / "ca.crt"
        if ca_cert_path.is_file():
            result.ca_cert_path = ca_cert_path
            result.verification = self.provider.verify(path, ca_cert_path)
        return result
