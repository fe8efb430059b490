"""CA configuration dataclasses."""

import os
from dataclasses import dataclass, fields

from cryptography import x509
from cryptography.x509 import oid

PROVIDERS = ("cryptography", "openssl")


@dataclass
class CAConfig:
    """Tool-wide defaults for key sizes, validity periods and the PKI provider."""

    default_organization: str = "P2P Network CA"
    country: str = "US"
    ca_key_size: int = 4096
    server_key_size: int = 2048
    ca_validity_days: int = 3650
    server_validity_days: int = 730
    provider: str = "cryptography"
    openssl_path: str = "openssl"

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"unknown PKI provider: {self.provider!r}")
        if self.server_key_size < 2048:
            raise ValueError("server key size must be at least 2048 bits")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "CAConfig":
        """Build configuration from CA_TOOL_* environment variables.

        Recognised variables:
            CA_TOOL_PROVIDER: 'cryptography' (default) or 'openssl'
            CA_TOOL_OPENSSL: path to the openssl binary
            CA_TOOL_CA_KEY_SIZE: RSA bits for the CA key
            CA_TOOL_SERVER_KEY_SIZE: RSA bits for leaf keys
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        if "CA_TOOL_PROVIDER" in env:
            overrides["provider"] = env["CA_TOOL_PROVIDER"].strip().lower()
        if "CA_TOOL_OPENSSL" in env:
            overrides["openssl_path"] = env["CA_TOOL_OPENSSL"]
        for name, field_name in (
            ("CA_TOOL_CA_KEY_SIZE", "ca_key_size"),
            ("CA_TOOL_SERVER_KEY_SIZE", "server_key_size"),
        ):
            if name in env:
                try:
                    overrides[field_name] = int(env[name])
                except ValueError as e:
                    raise ValueError(f"{name} must be an integer") from e

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in overrides.items() if k in known})


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name (C, O, CN; country optional)."""

    organization: str
    common_name: str
    country: str | None = None

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        attributes = []
        if self.country:
            attributes.append(x509.NameAttribute(oid.NameOID.COUNTRY_NAME, self.country))
        attributes.append(x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization))
        attributes.append(x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attributes)

    def to_openssl_subject(self) -> str:
        """Render as an openssl `-subj` argument, e.g. /O=Acme/CN=Acme Root CA."""

        def escape(value: str) -> str:
            return value.replace("\\", "\\\\").replace("/", "\\/")

        parts = []
        if self.country:
            parts.append(f"/C={escape(self.country)}")
        parts.append(f"/O={escape(self.organization)}")
        parts.append(f"/CN={escape(self.common_name)}")
        return "".join(parts)
