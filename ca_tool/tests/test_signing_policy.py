"""Tests for signing policy rendering and parsing."""

from pathlib import Path

import pytest

from ca_tool.lib.signing_policy import (
    CA_EXTENSIONS_SECTION,
    SERVER_EXTENSIONS_SECTION,
    SigningPolicy,
    parse_extensions,
    read_config,
    read_request_config,
)


@pytest.fixture
def ca_config_path(tmp_path: Path) -> Path:
    """Write a CA policy with non-default values and return its path."""
    policy = SigningPolicy(default_days=90, ca_key_bits=3072, server_key_bits=2048, ca_validity_days=1000)
    path = tmp_path / "openssl.cnf"
    path.write_text(policy.render_ca_config(tmp_path))
    return path


@pytest.fixture
def server_config_path(tmp_path: Path) -> Path:
    """Write a request config for 'peer1' and return its path."""
    path = tmp_path / "peer1.cnf"
    path.write_text(SigningPolicy().render_server_config("peer1", "US"))
    return path


class TestCAConfig:
    """Tests for the CA openssl.cnf document."""

    def test_policy_read_back_from_document(self, ca_config_path: Path) -> None:
        """from_ca_config recovers the values the CA was created with."""
        policy = SigningPolicy.from_ca_config(ca_config_path)

        assert policy.default_days == 90
        assert policy.ca_key_bits == 3072
        assert policy.server_key_bits == 2048
        assert policy.ca_validity_days == 1000
        assert policy.default_md == "sha256"
        assert policy.server_extended_key_usage == ("serverAuth",)

    def test_document_points_at_ca_files(self, ca_config_path: Path, tmp_path: Path) -> None:
        """CA_default section references the directory's bookkeeping files."""
        section = read_config(ca_config_path)["CA_default"]

        assert section["dir"] == tmp_path.as_posix()
        assert section["database"] == "$dir/ca.index"
        assert section["serial"] == "$dir/ca.srl"

    def test_ca_extension_profile(self, ca_config_path: Path) -> None:
        """v3_ca section describes a critical CA with signing key usages."""
        profile = parse_extensions(read_config(ca_config_path), CA_EXTENSIONS_SECTION)

        assert profile.ca is True
        assert profile.basic_constraints_critical is True
        assert profile.key_usage_critical is True
        assert set(profile.key_usage) == {"digitalSignature", "cRLSign", "keyCertSign"}
        assert profile.subject_key_identifier and profile.authority_key_identifier

    def test_missing_document_raises(self, tmp_path: Path) -> None:
        """An absent policy is reported as ValueError."""
        with pytest.raises(ValueError, match="cannot read config"):
            SigningPolicy.from_ca_config(tmp_path / "missing.cnf")

    def test_malformed_value_raises(self, ca_config_path: Path) -> None:
        """Non-numeric default_days is rejected."""
        text = ca_config_path.read_text().replace("default_days      = 90", "default_days = soon")
        ca_config_path.write_text(text)

        with pytest.raises(ValueError, match="invalid signing policy"):
            SigningPolicy.from_ca_config(ca_config_path)


class TestServerConfig:
    """Tests for the per-subject request config."""

    def test_request_subject(self, server_config_path: Path) -> None:
        """Subject is C=US, O=<name>, CN=<name>."""
        request = read_request_config(server_config_path)

        assert request.subject.country == "US"
        assert request.subject.organization == "peer1"
        assert request.subject.common_name == "peer1"
        assert request.key_bits == 2048
        assert request.digest == "sha256"

    def test_request_digest_follows_policy(self, tmp_path: Path) -> None:
        """The request config carries the policy's default_md for CSR signing."""
        path = tmp_path / "peer1.cnf"
        path.write_text(SigningPolicy(default_md="sha384").render_server_config("peer1", "US"))

        assert read_request_config(path).digest == "sha384"

    def test_requested_sans(self, server_config_path: Path) -> None:
        """The CSR extensions carry exactly the fixed SAN set."""
        request = read_request_config(server_config_path)

        assert request.extensions.dns_names == ["peer1", "localhost"]
        assert request.extensions.ip_addresses == ["127.0.0.1", "::1"]

    def test_server_extension_profile(self, server_config_path: Path) -> None:
        """Signing section describes a server-auth end-entity certificate."""
        profile = parse_extensions(read_config(server_config_path), SERVER_EXTENSIONS_SECTION)

        assert profile.ca is False
        assert profile.key_usage == ["digitalSignature", "keyEncipherment"]
        assert profile.extended_key_usage == ["serverAuth"]
        assert profile.dns_names == ["peer1", "localhost"]

    def test_inline_alt_names(self, tmp_path: Path) -> None:
        """subjectAltName may also be given inline."""
        path = tmp_path / "inline.cnf"
        path.write_text("[ext]\nsubjectAltName = DNS:a.example, IP:10.0.0.1\n")

        profile = parse_extensions(read_config(path), "ext")

        assert profile.dns_names == ["a.example"]
        assert profile.ip_addresses == ["10.0.0.1"]

    def test_unsupported_key_usage_rejected(self, tmp_path: Path) -> None:
        """Unknown keyUsage names are an error rather than silently dropped."""
        path = tmp_path / "bad.cnf"
        path.write_text("[ext]\nkeyUsage = critical, signEverything\n")

        with pytest.raises(ValueError, match="unsupported keyUsage"):
            parse_extensions(read_config(path), "ext")
