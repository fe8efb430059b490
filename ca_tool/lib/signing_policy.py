"""Signing policy documents: the CA's openssl.cnf and per-server request configs.

Both files use OpenSSL's configuration syntax so they can be consumed by the
openssl binary directly. The native provider reads them back through
``configparser`` (sections are written without padding inside the brackets
and only ``=`` is used as delimiter, which keeps the two parsers in agreement).
"""

import configparser
import ipaddress
from dataclasses import dataclass, field
from pathlib import Path

from ca_tool.lib.config import DistinguishedName

CA_EXTENSIONS_SECTION = "v3_ca"
SERVER_EXTENSIONS_SECTION = "server_ext"

KEY_USAGE_NAMES = {
    "digitalSignature": "digital_signature",
    "nonRepudiation": "content_commitment",
    "contentCommitment": "content_commitment",
    "keyEncipherment": "key_encipherment",
    "dataEncipherment": "data_encipherment",
    "keyAgreement": "key_agreement",
    "keyCertSign": "key_cert_sign",
    "cRLSign": "crl_sign",
    "encipherOnly": "encipher_only",
    "decipherOnly": "decipher_only",
}

EXTENDED_KEY_USAGE_NAMES = (
    "serverAuth",
    "clientAuth",
    "codeSigning",
    "emailProtection",
    "timeStamping",
    "OCSPSigning",
)


@dataclass
class SigningPolicy:
    """Fixed rules under which a CA issues certificates.

    Written once into openssl.cnf by create-ca and re-read on every issuance.
    """

    default_days: int = 730
    default_md: str = "sha256"
    ca_key_bits: int = 4096
    server_key_bits: int = 2048
    ca_validity_days: int = 3650
    ca_key_usage: tuple[str, ...] = ("digitalSignature", "cRLSign", "keyCertSign")
    server_key_usage: tuple[str, ...] = ("digitalSignature", "keyEncipherment")
    server_extended_key_usage: tuple[str, ...] = ("serverAuth",)
    default_crl_days: int = 30

    def render_ca_config(self, ca_dir: Path) -> str:
        """Render the CA's openssl.cnf."""
        return CA_CONFIG_TEMPLATE.format(
            dir=ca_dir.as_posix(),
            default_days=self.default_days,
            default_md=self.default_md,
            default_crl_days=self.default_crl_days,
            ca_key_bits=self.ca_key_bits,
            server_key_bits=self.server_key_bits,
            ca_validity_days=self.ca_validity_days,
            ca_key_usage=", ".join(self.ca_key_usage),
            server_key_usage=", ".join(self.server_key_usage),
            server_extended_key_usage=", ".join(self.server_extended_key_usage),
        )

    def render_server_config(self, subject_name: str, country: str) -> str:
        """Render a per-subject request config with the fixed SAN set."""
        return SERVER_CONFIG_TEMPLATE.format(
            name=subject_name,
            country=country,
            server_key_bits=self.server_key_bits,
            default_md=self.default_md,
            server_key_usage=", ".join(self.server_key_usage),
            server_extended_key_usage=", ".join(self.server_extended_key_usage),
        )

    @classmethod
    def from_ca_config(cls, config_path: Path) -> "SigningPolicy":
        """Load the policy a CA was created with from its openssl.cnf.

        Raises:
            ValueError: If the document is unreadable or a value is malformed
        """
        parser = read_config(config_path)
        defaults = cls()
        try:
            ca_default = parser["CA_default"]
            tool = parser["ca_tool"] if parser.has_section("ca_tool") else {}
            server_ext = parse_extensions(parser, "v3_server")
            ca_ext = parse_extensions(parser, CA_EXTENSIONS_SECTION)
            return cls(
                default_days=int(ca_default.get("default_days", defaults.default_days)),
                default_md=ca_default.get("default_md", defaults.default_md),
                ca_key_bits=int(parser["req"].get("default_bits", defaults.ca_key_bits)),
                server_key_bits=int(tool.get("server_default_bits", defaults.server_key_bits)),
                ca_validity_days=int(tool.get("ca_validity_days", defaults.ca_validity_days)),
                ca_key_usage=tuple(ca_ext.key_usage) or defaults.ca_key_usage,
                server_key_usage=tuple(server_ext.key_usage) or defaults.server_key_usage,
                server_extended_key_usage=(
                    tuple(server_ext.extended_key_usage) or defaults.server_extended_key_usage
                ),
                default_crl_days=int(
                    ca_default.get("default_crl_days", defaults.default_crl_days)
                ),
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"invalid signing policy in {config_path}: {e}") from e


@dataclass
class ExtensionProfile:
    """X.509 v3 extensions described by one section of an OpenSSL config."""

    ca: bool | None = None
    path_length: int | None = None
    basic_constraints_critical: bool = False
    key_usage: list[str] = field(default_factory=list)
    key_usage_critical: bool = False
    extended_key_usage: list[str] = field(default_factory=list)
    dns_names: list[str] = field(default_factory=list)
    ip_addresses: list[str] = field(default_factory=list)
    subject_key_identifier: bool = False
    authority_key_identifier: bool = False


@dataclass
class RequestConfig:
    """Subject and requested extensions read from a server request config."""

    subject: DistinguishedName
    key_bits: int
    extensions: ExtensionProfile
    digest: str = "sha256"


def read_config(path: Path) -> configparser.ConfigParser:
    """Parse an OpenSSL-style config file written by this module."""
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=("#",),
        interpolation=None,
        strict=False,
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        with path.open(encoding="utf-8") as f:
            parser.read_file(f)
    except (OSError, configparser.Error) as e:
        raise ValueError(f"cannot read config {path}: {e}") from e
    return parser


def _split_values(raw: str) -> tuple[bool, list[str]]:
    values = [v.strip() for v in raw.split(",") if v.strip()]
    critical = bool(values) and values[0] == "critical"
    if critical:
        values = values[1:]
    return critical, values


def _parse_alt_names(parser: configparser.ConfigParser, raw: str, profile: ExtensionProfile) -> None:
    if raw.startswith("@"):
        section = parser[raw[1:]]
        entries = [(key.split(".", 1)[0], value.strip()) for key, value in section.items()]
    else:
        _, values = _split_values(raw)
        entries = [tuple(v.split(":", 1)) for v in values]  # type: ignore[misc]

    for kind, value in entries:
        if kind == "DNS":
            profile.dns_names.append(value)
        elif kind == "IP":
            profile.ip_addresses.append(str(ipaddress.ip_address(value)))
        else:
            raise ValueError(f"unsupported subjectAltName type: {kind}")


def parse_extensions(parser: configparser.ConfigParser, section: str) -> ExtensionProfile:
    """Interpret an extension section (basicConstraints, keyUsage, SAN, ...)."""
    profile = ExtensionProfile()
    for key, raw in parser[section].items():
        raw = raw.strip()
        if key == "basicConstraints":
            critical, values = _split_values(raw)
            profile.basic_constraints_critical = critical
            for value in values:
                name, _, setting = value.partition(":")
                if name == "CA":
                    profile.ca = setting.strip().upper() == "TRUE"
                elif name == "pathlen":
                    profile.path_length = int(setting)
        elif key == "keyUsage":
            profile.key_usage_critical, usages = _split_values(raw)
            for usage in usages:
                if usage not in KEY_USAGE_NAMES:
                    raise ValueError(f"unsupported keyUsage: {usage}")
            profile.key_usage = usages
        elif key == "extendedKeyUsage":
            _, usages = _split_values(raw)
            for usage in usages:
                if usage not in EXTENDED_KEY_USAGE_NAMES:
                    raise ValueError(f"unsupported extendedKeyUsage: {usage}")
            profile.extended_key_usage = usages
        elif key == "subjectKeyIdentifier":
            profile.subject_key_identifier = raw == "hash"
        elif key == "authorityKeyIdentifier":
            profile.authority_key_identifier = True
        elif key == "subjectAltName":
            _parse_alt_names(parser, raw, profile)
    return profile


def read_request_config(path: Path) -> RequestConfig:
    """Read subject, key size and requested extensions from a <name>.cnf.

    Raises:
        ValueError: If required sections or subject fields are missing
    """
    parser = read_config(path)
    try:
        req = parser["req"]
        dn_section = parser[req["distinguished_name"]]
        subject = DistinguishedName(
            organization=dn_section.get("O") or dn_section["organizationName"],
            common_name=dn_section.get("CN") or dn_section["commonName"],
            country=dn_section.get("C") or dn_section.get("countryName"),
        )
        extensions = (
            parse_extensions(parser, req["req_extensions"])
            if "req_extensions" in req
            else ExtensionProfile()
        )
        return RequestConfig(
            subject=subject,
            key_bits=int(req.get("default_bits", "2048")),
            digest=req.get("default_md", "sha256"),
            extensions=extensions,
        )
    except KeyError as e:
        raise ValueError(f"request config {path} is missing {e}") from e


CA_CONFIG_TEMPLATE = """\
[ca]
default_ca = CA_default

[CA_default]
dir               = {dir}
certs             = $dir
crl_dir           = $dir
new_certs_dir     = $dir
database          = $dir/ca.index
serial            = $dir/ca.srl
private_key       = $dir/ca.key
certificate       = $dir/ca.crt
crlnumber         = $dir/crlnumber
crl               = $dir/crl.pem
crl_extensions    = crl_ext
default_crl_days  = {default_crl_days}
default_md        = {default_md}
name_opt          = ca_default
cert_opt          = ca_default
default_days      = {default_days}
preserve          = no
policy            = policy_strict

[policy_strict]
countryName             = optional
stateOrProvinceName     = optional
organizationName        = supplied
organizationalUnitName  = optional
commonName              = supplied
emailAddress            = optional

[req]
default_bits        = {ca_key_bits}
distinguished_name  = req_distinguished_name
string_mask         = utf8only
default_md          = {default_md}
x509_extensions     = v3_ca

[req_distinguished_name]
countryName                     = Country Name (2 letter code)
stateOrProvinceName             = State or Province Name
localityName                    = Locality Name
organizationName                = Organization Name
organizationalUnitName          = Organizational Unit Name
commonName                      = Common Name
emailAddress                    = Email Address

[v3_ca]
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid:always,issuer
basicConstraints = critical, CA:true
keyUsage = critical, {ca_key_usage}

[v3_server]
basicConstraints = CA:FALSE
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid,issuer:always
keyUsage = critical, {server_key_usage}
extendedKeyUsage = {server_extended_key_usage}

[crl_ext]
authorityKeyIdentifier = keyid:always

[ca_tool]
server_default_bits = {server_key_bits}
ca_validity_days    = {ca_validity_days}
"""

SERVER_CONFIG_TEMPLATE = """\
[req]
default_bits       = {server_key_bits}
default_md         = {default_md}
distinguished_name = req_distinguished_name
req_extensions     = req_ext
prompt             = no

[req_distinguished_name]
C = {country}
O = {name}
CN = {name}

[req_ext]
subjectAltName = @alt_names

[server_ext]
basicConstraints = CA:FALSE
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid,issuer
keyUsage = critical, {server_key_usage}
extendedKeyUsage = {server_extended_key_usage}
subjectAltName = @alt_names

[alt_names]
DNS.1 = {name}
DNS.2 = localhost
IP.1 = 127.0.0.1
IP.2 = ::1
"""
