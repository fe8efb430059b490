"""Server certificate issuance against an existing CA Directory."""

import re
from datetime import UTC, datetime
from pathlib import Path

from ca_tool.lib.ca_store import CAStore
from ca_tool.lib.config import CAConfig, DistinguishedName
from ca_tool.lib.errors import CANotFoundError, InvalidInputError, SigningFailedError
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CAPaths, CertificateSummary, ServerCertResult, ServerPaths
from ca_tool.lib.pki_provider import PKIProvider, get_provider
from ca_tool.lib.signing_policy import SERVER_EXTENSIONS_SECTION, SigningPolicy

# Subject names become directory and file names under servers/.
SUBJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

# Latest notAfter an X.509 GeneralizedTime can encode.
MAX_NOT_AFTER = datetime(9999, 12, 31, 23, 59, 59, tzinfo=UTC)


def validate_subject_name(subject_name: str) -> str:
    """Return subject_name if it is a usable, path-safe identifier.

    Raises:
        InvalidInputError: If empty or containing anything but letters, digits, '.', '_', '-'
    """
    if not subject_name or not subject_name.strip():
        raise InvalidInputError("server name is required")
    if not SUBJECT_NAME_PATTERN.match(subject_name) or len(subject_name) > 64:
        raise InvalidInputError(
            f"invalid server name {subject_name!r}: use letters, digits, '.', '_' or '-' "
            "(starting with a letter or digit, at most 64 characters)"
        )
    return subject_name


def validate_validity_days(validity_days: int, now: datetime | None = None) -> int:
    """Return validity_days if it is a positive integer whose expiry is encodable.

    Raises:
        InvalidInputError: If not a positive integer or the expiry falls after year 9999
    """
    if isinstance(validity_days, bool) or not isinstance(validity_days, int) or validity_days <= 0:
        raise InvalidInputError(f"validity days must be a positive integer, got {validity_days!r}")
    now = now or datetime.now(UTC)
    max_days = (MAX_NOT_AFTER - now).days
    if validity_days > max_days:
        raise InvalidInputError(
            f"validity days must be at most {max_days} (expiry after year 9999), got {validity_days}"
        )
    return validity_days


def index_line(summary: CertificateSummary, subject: DistinguishedName) -> str:
    """Format one ca.index entry in OpenSSL database layout."""
    expiry = summary.not_after.strftime("%y%m%d%H%M%SZ")
    return f"V\t{expiry}\t\t{summary.serial}\tunknown\t{subject.to_openssl_subject()}\n"


def render_tls_snippet(result: ServerCertResult) -> str:
    """Configuration block for a TLS-enabled service using the issued certificate."""
    return (
        "tls:\n"
        "  enabled: true\n"
        f"  keyPath: \"{result.paths.key_path.as_posix()}\"\n"
        f"  certPath: \"{result.paths.cert_path.as_posix()}\"\n"
        f"  caPath: \"{result.ca_cert_path.as_posix()}\"\n"
        "  requireClientCert: false\n"
    )


class CertificateIssuer:
    """Issues server leaf certificates signed by a CA Directory's root."""

    def __init__(self, config: CAConfig, provider: PKIProvider | None = None) -> None:
        self.config = config
        self.provider = provider or get_provider(config)

    def _load_policy(self, ca: CAPaths) -> SigningPolicy:
        if not ca.config_path.is_file():
            raise CANotFoundError(f"signing policy not found: {ca.config_path}")
        if not ca.serial_path.is_file():
            raise CANotFoundError(f"serial file not found: {ca.serial_path}")
        try:
            return SigningPolicy.from_ca_config(ca.config_path)
        except ValueError as e:
            raise SigningFailedError("cannot load signing policy", diagnostic=str(e)) from e

    def issue_server_certificate(
        self,
        ca_directory: str | Path,
        subject_name: str,
        validity_days: int | None = None,
    ) -> ServerCertResult:
        """Issue a server certificate for subject_name.

        Writes servers/<name>/<name>.{cnf,key,csr,crt} and appends to ca.index.
        SANs are always DNS:<name>, DNS:localhost, IP:127.0.0.1 and IP:::1.
        Re-issuing an existing name replaces that record's files; partial files
        from a failed run are left in place.

        Args:
            ca_directory: Existing CA Directory
            subject_name: Used as CN, O and primary DNS SAN
            validity_days: Certificate lifetime; defaults to the policy's default_days

        Returns:
            ServerCertResult with the record's paths and certificate summary

        Raises:
            CANotFoundError: If the CA is missing (nothing is written)
            InvalidInputError: If subject_name or validity_days is invalid
            SigningFailedError: If the PKI toolkit fails
        """
        ca = CAStore.locate_ca(ca_directory)
        validate_subject_name(subject_name)
        policy = self._load_policy(ca)

        if validity_days is None:
            validity_days = policy.default_days
        validate_validity_days(validity_days)

        server = ServerPaths.for_subject(ca.servers_dir, subject_name)
        replaced_existing = server.cert_path.exists()
        if replaced_existing:
            LOGGER.warning("Replacing existing certificate for %s at %s", subject_name, server.cert_path)

        if not server.directory.exists():
            server.directory.mkdir(parents=True, exist_ok=True)
            LOGGER.info("Created directory for server certificates: %s", server.directory)

        subject = DistinguishedName(
            organization=subject_name,
            common_name=subject_name,
            country=self.config.country,
        )
        server.config_path.write_text(policy.render_server_config(subject_name, self.config.country))
        LOGGER.info("Created server configuration at: %s", server.config_path)

        LOGGER.info("Generating private key for %s...", subject_name)
        self.provider.gen_key(server.key_path, policy.server_key_bits)

        LOGGER.info("Generating certificate signing request for %s...", subject_name)
        self.provider.gen_csr(server.key_path, server.config_path, server.csr_path)

        LOGGER.info("Signing certificate for %s with CA...", subject_name)
        self.provider.sign(
            csr_path=server.csr_path,
            ca=ca,
            config_path=server.config_path,
            extensions_section=SERVER_EXTENSIONS_SECTION,
            cert_path=server.cert_path,
            days=validity_days,
            digest=policy.default_md,
        )

        summary = self.provider.inspect(server.cert_path)
        with ca.index_path.open("a") as index:
            index.write(index_line(summary, subject))

        return ServerCertResult(
            subject_name=subject_name,
            paths=server,
            ca_cert_path=ca.cert_path,
            summary=summary,
            replaced_existing=replaced_existing,
        )
