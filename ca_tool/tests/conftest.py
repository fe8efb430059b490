"""Test fixtures for ca_tool tests."""

from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ca_tool.lib.ca_store import CAStore
from ca_tool.lib.cert_utils import generate_private_key, hash_algorithm
from ca_tool.lib.certificate_builder import CertificateBuilder
from ca_tool.lib.config import CAConfig, DistinguishedName
from ca_tool.lib.issuer import CertificateIssuer
from ca_tool.lib.models import CAPaths
from ca_tool.lib.native_provider import CryptographyProvider
from ca_tool.lib.signing_policy import ExtensionProfile


@pytest.fixture
def ca_config() -> CAConfig:
    """Return test configuration with small keys."""
    return CAConfig(
        default_organization="Test Org",
        ca_key_size=2048,  # Faster for tests
        server_key_size=2048,
    )


@pytest.fixture
def provider() -> CryptographyProvider:
    """Return the native PKI provider."""
    return CryptographyProvider()


@pytest.fixture
def ca_store(ca_config: CAConfig, provider: CryptographyProvider) -> CAStore:
    """Return CA store using the native provider."""
    return CAStore(ca_config, provider)


@pytest.fixture
def issuer(ca_config: CAConfig, provider: CryptographyProvider) -> CertificateIssuer:
    """Return certificate issuer using the native provider."""
    return CertificateIssuer(ca_config, provider)


@pytest.fixture
def ca_dir(tmp_path: Path, ca_store: CAStore) -> Path:
    """Create an 'Acme' CA on disk and return its directory."""
    directory = tmp_path / "ca1"
    ca_store.create_ca(directory, "Acme")
    return directory


@pytest.fixture
def ca_paths(ca_dir: Path) -> CAPaths:
    """Return the paths of the on-disk test CA."""
    return CAPaths.for_directory(ca_dir)


@pytest.fixture
def root_key() -> RSAPrivateKey:
    """Generate RSA private key for an in-memory root CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_profile() -> ExtensionProfile:
    """Return the CA extension profile create-ca uses."""
    return ExtensionProfile(
        ca=True,
        basic_constraints_critical=True,
        key_usage=["digitalSignature", "cRLSign", "keyCertSign"],
        key_usage_critical=True,
        subject_key_identifier=True,
        authority_key_identifier=True,
    )


@pytest.fixture
def server_profile() -> ExtensionProfile:
    """Return the server extension profile issued leaves carry."""
    return ExtensionProfile(
        ca=False,
        key_usage=["digitalSignature", "keyEncipherment"],
        key_usage_critical=True,
        extended_key_usage=["serverAuth"],
        dns_names=["peer1", "localhost"],
        ip_addresses=["127.0.0.1", "::1"],
        subject_key_identifier=True,
        authority_key_identifier=True,
    )


@pytest.fixture
def root_cert(root_key: RSAPrivateKey, ca_profile: ExtensionProfile) -> x509.Certificate:
    """Generate an in-memory self-signed root certificate."""
    return CertificateBuilder.build_root_ca(
        subject_dn=DistinguishedName(organization="Test Org", common_name="Test Org Root CA"),
        private_key=root_key,
        validity_days=365,
        profile=ca_profile,
        serial_number=1000,
        algorithm=hash_algorithm("sha256"),
    )
