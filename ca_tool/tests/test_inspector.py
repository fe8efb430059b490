"""Tests for Inspector - listing and checking certificates."""

import shutil
from pathlib import Path

import pytest

from ca_tool.lib.ca_store import CAStore
from ca_tool.lib.config import CAConfig
from ca_tool.lib.errors import NotFoundError
from ca_tool.lib.inspector import Inspector
from ca_tool.lib.issuer import CertificateIssuer
from ca_tool.lib.native_provider import CryptographyProvider


@pytest.fixture
def inspector(ca_config: CAConfig, provider: CryptographyProvider) -> Inspector:
    """Return inspector using the native provider."""
    return Inspector(ca_config, provider)


class TestListCertificates:
    """Tests for list_certificates()."""

    def test_fresh_ca_has_no_servers(self, ca_dir: Path, inspector: Inspector) -> None:
        """A new CA lists its own certificate and no server certificates."""
        listing = inspector.list_certificates(ca_dir)

        assert listing.ca_summary is not None
        assert listing.ca_summary.subject == "CN=Acme Root CA,O=Acme"
        assert listing.servers == []

    def test_lists_servers_in_name_order(
        self, ca_dir: Path, issuer: CertificateIssuer, inspector: Inspector
    ) -> None:
        issuer.issue_server_certificate(ca_dir, "zeta", 30)
        issuer.issue_server_certificate(ca_dir, "alpha", 30)

        listing = inspector.list_certificates(ca_dir)

        assert [entry.name for entry in listing.servers] == ["alpha", "zeta"]
        assert all(entry.summary is not None for entry in listing.servers)
        assert listing.servers[0].summary.issuer == "CN=Acme Root CA,O=Acme"

    def test_bad_certificate_does_not_abort_listing(
        self, ca_dir: Path, issuer: CertificateIssuer, inspector: Inspector
    ) -> None:
        """One unreadable certificate is reported inline; the rest are still listed."""
        issuer.issue_server_certificate(ca_dir, "good", 30)
        broken_dir = ca_dir / "servers" / "broken"
        broken_dir.mkdir(parents=True)
        (broken_dir / "broken.crt").write_text("not a certificate")

        listing = inspector.list_certificates(ca_dir)
        entries = {entry.name: entry for entry in listing.servers}

        assert entries["broken"].summary is None
        assert entries["broken"].error
        assert entries["good"].summary is not None

    def test_skips_directories_without_certificate(
        self, ca_dir: Path, inspector: Inspector
    ) -> None:
        (ca_dir / "servers" / "pending").mkdir(parents=True)

        assert inspector.list_certificates(ca_dir).servers == []

    def test_missing_ca_certificate_is_not_fatal(
        self, ca_dir: Path, issuer: CertificateIssuer, inspector: Inspector
    ) -> None:
        """Without ca.crt the CA summary is absent but servers are still listed."""
        issuer.issue_server_certificate(ca_dir, "peer1", 30)
        (ca_dir / "ca.crt").unlink()

        listing = inspector.list_certificates(ca_dir)

        assert listing.ca_summary is None
        assert [entry.name for entry in listing.servers] == ["peer1"]

    def test_missing_directory(self, tmp_path: Path, inspector: Inspector) -> None:
        with pytest.raises(NotFoundError):
            inspector.list_certificates(tmp_path / "absent")


class TestCheckCertificate:
    """Tests for check_certificate()."""

    def test_issued_certificate_verifies(
        self, ca_dir: Path, issuer: CertificateIssuer, inspector: Inspector
    ) -> None:
        """An issued leaf is decoded and verifies against the CA two levels up."""
        cert_path = issuer.issue_server_certificate(ca_dir, "peer1", 30).paths.cert_path

        result = inspector.check_certificate(cert_path)

        assert "CN=peer1" in result.text
        assert result.ca_cert_path is not None
        assert result.ca_cert_path.resolve() == (ca_dir / "ca.crt").resolve()
        assert result.verification is not None
        assert result.verification.ok is True

    def test_no_ca_skips_verification(
        self, tmp_path: Path, ca_dir: Path, issuer: CertificateIssuer, inspector: Inspector
    ) -> None:
        """A certificate outside a CA tree is decoded without verification."""
        cert_path = issuer.issue_server_certificate(ca_dir, "peer1", 30).paths.cert_path
        loose = tmp_path / "loose" / "peer1.crt"
        loose.parent.mkdir()
        shutil.copy(cert_path, loose)

        result = inspector.check_certificate(loose)

        assert result.text
        assert result.verification is None

    def test_foreign_ca_fails_verification(
        self,
        tmp_path: Path,
        ca_dir: Path,
        ca_store: CAStore,
        issuer: CertificateIssuer,
        inspector: Inspector,
    ) -> None:
        """A leaf placed under a different CA does not verify against it."""
        cert_path = issuer.issue_server_certificate(ca_dir, "peer1", 30).paths.cert_path
        other_ca = tmp_path / "other"
        ca_store.create_ca(other_ca, "Other")
        planted = other_ca / "servers" / "peer1" / "peer1.crt"
        planted.parent.mkdir(parents=True)
        shutil.copy(cert_path, planted)

        result = inspector.check_certificate(planted)

        assert result.verification is not None
        assert result.verification.ok is False

    def test_missing_certificate(self, tmp_path: Path, inspector: Inspector) -> None:
        with pytest.raises(NotFoundError):
            inspector.check_certificate(tmp_path / "absent.crt")
