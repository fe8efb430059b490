"""Result models for CA tool operations."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class CAPaths:
    """Locations of the files that make up a CA Directory."""

    root: Path
    key_path: Path
    cert_path: Path
    serial_path: Path
    index_path: Path
    config_path: Path

    @classmethod
    def for_directory(cls, root: Path) -> "CAPaths":
        return cls(
            root=root,
            key_path=root / "ca.key",
            cert_path=root / "ca.crt",
            serial_path=root / "ca.srl",
            index_path=root / "ca.index",
            config_path=root / "openssl.cnf",
        )

    @property
    def servers_dir(self) -> Path:
        return self.root / "servers"


@dataclass(frozen=True)
class ServerPaths:
    """Locations of a Server Certificate Record under servers/<name>/."""

    directory: Path
    key_path: Path
    csr_path: Path
    cert_path: Path
    config_path: Path

    @classmethod
    def for_subject(cls, servers_dir: Path, subject_name: str) -> "ServerPaths":
        directory = servers_dir / subject_name
        return cls(
            directory=directory,
            key_path=directory / f"{subject_name}.key",
            csr_path=directory / f"{subject_name}.csr",
            cert_path=directory / f"{subject_name}.crt",
            config_path=directory / f"{subject_name}.cnf",
        )


@dataclass(frozen=True)
class CertificateSummary:
    """Subject, issuer, validity window and serial of a certificate.

    Names are RFC 4514 strings; serial is uppercase hex without separators.
    """

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    serial: str

    @property
    def validity_days(self) -> float:
        return (self.not_after - self.not_before).total_seconds() / 86400


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a certificate against a CA certificate."""

    ok: bool
    detail: str


@dataclass
class CAResult:
    """Result from CA creation."""

    paths: CAPaths
    summary: CertificateSummary
    permissions_restricted: bool


@dataclass
class ServerCertResult:
    """Result from server certificate issuance.

    Contains file paths of the new record plus the CA certificate path needed
    to configure a TLS service.
    """

    subject_name: str
    paths: ServerPaths
    ca_cert_path: Path
    summary: CertificateSummary
    replaced_existing: bool = False


@dataclass
class ListingEntry:
    """One issued certificate in a listing; exactly one of summary/error is set."""

    name: str
    cert_path: Path
    summary: CertificateSummary | None = None
    error: str | None = None


@dataclass
class CertificateListing:
    """CA summary (None when ca.crt is absent) plus issued server certificates."""

    ca_directory: Path
    ca_summary: CertificateSummary | None
    servers: list[ListingEntry] = field(default_factory=list)


@dataclass
class CheckResult:
    """Decoded certificate text plus optional chain verification."""

    cert_path: Path
    text: str
    ca_cert_path: Path | None = None
    verification: VerificationResult | None = None
