"""Certificate utility functions for key generation, serialization and inspection."""

import uuid
from datetime import UTC, datetime

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ca_tool.lib.models import CertificateSummary, VerificationResult

HASH_ALGORITHMS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def generate_private_key(key_size: int = 4096) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def serialize_csr(csr: x509.CertificateSigningRequest) -> bytes:
    """Serialize CSR to PEM format."""
    return csr.public_bytes(serialization.Encoding.PEM)


def deserialize_csr(pem_data: bytes) -> x509.CertificateSigningRequest:
    """Deserialize CSR from PEM bytes."""
    return x509.load_pem_x509_csr(pem_data)


def hash_algorithm(name: str) -> hashes.HashAlgorithm:
    """Map an OpenSSL digest name (e.g. 'sha256') to a hash instance."""
    try:
        return HASH_ALGORITHMS[name.lower()]()
    except KeyError:
        raise ValueError(f"unsupported digest: {name}") from None


def generate_serial_seed() -> str:
    """Generate the initial serial token for a new CA as 32 hex digits.

    Uses UUID v4 (random), giving ~122 bits of entropy; always non-zero and
    well below the 20-octet serial limit of RFC 5280.
    """
    return uuid.uuid4().hex


def generate_serial_number() -> int:
    """Generate a random certificate serial number (for self-signed roots)."""
    return uuid.uuid4().int


def format_serial(serial: int) -> str:
    """Return serial as even-length uppercase hex (OpenSSL serial file style)."""
    serial_hex = f"{serial:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return serial_hex


def summarize_certificate(cert: x509.Certificate) -> CertificateSummary:
    """Extract subject, issuer, validity window and serial from a certificate."""
    return CertificateSummary(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial=format_serial(cert.serial_number),
    )


def get_common_name(name: x509.Name) -> str:
    """Return the first CN of a name."""
    cn = name.get_attributes_for_oid(x509.NameOID.COMMON_NAME)[0].value
    if not isinstance(cn, str):
        raise ValueError("CN must be string")
    return cn


def get_subject_alt_names(cert: x509.Certificate) -> tuple[list[str], list[str]]:
    """Return (dns_names, ip_addresses) from the SAN extension, empty if absent."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return [], []
    dns_names = san.get_values_for_type(x509.DNSName)
    ip_addresses = [str(ip) for ip in san.get_values_for_type(x509.IPAddress)]
    return dns_names, ip_addresses


def _describe_extension(ext: x509.Extension) -> list[str]:
    value = ext.value
    if isinstance(value, x509.BasicConstraints):
        text = f"CA:{str(value.ca).upper()}"
        if value.path_length is not None:
            text += f", pathlen:{value.path_length}"
        return [text]
    if isinstance(value, x509.KeyUsage):
        usages = []
        for attr, label in (
            ("digital_signature", "Digital Signature"),
            ("content_commitment", "Non Repudiation"),
            ("key_encipherment", "Key Encipherment"),
            ("data_encipherment", "Data Encipherment"),
            ("key_agreement", "Key Agreement"),
            ("key_cert_sign", "Certificate Sign"),
            ("crl_sign", "CRL Sign"),
        ):
            if getattr(value, attr):
                usages.append(label)
        return [", ".join(usages)]
    if isinstance(value, x509.ExtendedKeyUsage):
        return [", ".join(usage._name for usage in value)]
    if isinstance(value, x509.SubjectAlternativeName):
        entries = [f"DNS:{name}" for name in value.get_values_for_type(x509.DNSName)]
        entries += [f"IP Address:{ip}" for ip in value.get_values_for_type(x509.IPAddress)]
        return [", ".join(entries)]
    if isinstance(value, x509.SubjectKeyIdentifier):
        return [value.digest.hex(":").upper()]
    if isinstance(value, x509.AuthorityKeyIdentifier) and value.key_identifier:
        return [value.key_identifier.hex(":").upper()]
    return [repr(value)]


def render_certificate_text(cert: x509.Certificate) -> str:
    """Render a human-readable dump of a certificate, similar to `openssl x509 -text`."""
    public_key = cert.public_key()
    key_bits = getattr(public_key, "key_size", None)
    algorithm = cert.signature_hash_algorithm
    lines = [
        "Certificate:",
        "    Data:",
        f"        Version: {cert.version.value + 1} ({cert.version.value:#x})",
        f"        Serial Number: {format_serial(cert.serial_number)}",
        f"        Signature Algorithm: {algorithm.name if algorithm else 'unknown'}",
        f"        Issuer: {cert.issuer.rfc4514_string()}",
        "        Validity",
        f"            Not Before: {cert.not_valid_before_utc:%b %d %H:%M:%S %Y} GMT",
        f"            Not After : {cert.not_valid_after_utc:%b %d %H:%M:%S %Y} GMT",
        f"        Subject: {cert.subject.rfc4514_string()}",
        "        Subject Public Key Info:",
        f"            Public Key Algorithm: {type(public_key).__name__}",
    ]
    if key_bits:
        lines.append(f"                Public-Key: ({key_bits} bit)")
    if len(cert.extensions):
        lines.append("        X509v3 extensions:")
        for ext in cert.extensions:
            critical = " critical" if ext.critical else ""
            lines.append(f"            {ext.oid._name}:{critical}")
            lines.extend(f"                {line}" for line in _describe_extension(ext))
    lines.append(f"    Fingerprint (SHA256): {cert.fingerprint(hashes.SHA256()).hex(':').upper()}")
    return "\n".join(lines) + "\n"


def verify_certificate(
    cert: x509.Certificate,
    ca_cert: x509.Certificate,
    now: datetime | None = None,
) -> VerificationResult:
    """Verify that cert was issued by ca_cert and both are currently valid.

    Checks the issuer signature, that the CA is marked as a CA, and the
    validity windows of both certificates.
    """
    now = now or datetime.now(UTC)
    try:
        cert.verify_directly_issued_by(ca_cert)
    except (InvalidSignature, ValueError, TypeError) as e:
        reason = str(e) or "invalid signature"
        return VerificationResult(ok=False, detail=f"signature check failed: {reason}")

    try:
        bc = ca_cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return VerificationResult(ok=False, detail="issuer is not a CA certificate")
    if not bc.ca:
        return VerificationResult(ok=False, detail="issuer is not a CA certificate")

    for label, candidate in (("certificate", cert), ("CA certificate", ca_cert)):
        if now < candidate.not_valid_before_utc:
            return VerificationResult(ok=False, detail=f"{label} is not yet valid")
        if now > candidate.not_valid_after_utc:
            return VerificationResult(ok=False, detail=f"{label} has expired")

    return VerificationResult(ok=True, detail="OK")
