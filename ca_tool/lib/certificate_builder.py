"""Certificate builder for X.509 certificate construction."""

import ipaddress
from datetime import UTC, datetime, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from ca_tool.lib.config import DistinguishedName
from ca_tool.lib.signing_policy import KEY_USAGE_NAMES, ExtensionProfile

EXTENDED_KEY_USAGE_OIDS = {
    "serverAuth": ExtendedKeyUsageOID.SERVER_AUTH,
    "clientAuth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "codeSigning": ExtendedKeyUsageOID.CODE_SIGNING,
    "emailProtection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "timeStamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "OCSPSigning": ExtendedKeyUsageOID.OCSP_SIGNING,
}


def _subject_alt_name(profile: ExtensionProfile) -> x509.SubjectAlternativeName | None:
    names: list[x509.GeneralName] = [x509.DNSName(name) for name in profile.dns_names]
    names += [x509.IPAddress(ipaddress.ip_address(ip)) for ip in profile.ip_addresses]
    return x509.SubjectAlternativeName(names) if names else None


def _key_usage(profile: ExtensionProfile) -> x509.KeyUsage:
    flags = dict.fromkeys(set(KEY_USAGE_NAMES.values()), False)
    for usage in profile.key_usage:
        flags[KEY_USAGE_NAMES[usage]] = True
    return x509.KeyUsage(**flags)


class CertificateBuilder:
    """Builds the self-signed CA certificate, server CSRs and server certificates.

    Extensions come from an ExtensionProfile parsed out of the signing policy,
    so the native path issues the same extension set the openssl binary would.
    """

    @staticmethod
    def apply_extensions(
        builder: x509.CertificateBuilder,
        profile: ExtensionProfile,
        public_key: RSAPublicKey,
        issuer_public_key: RSAPublicKey,
    ) -> x509.CertificateBuilder:
        """Add the profile's extensions to a certificate builder."""
        if profile.ca is not None:
            builder = builder.add_extension(
                x509.BasicConstraints(ca=profile.ca, path_length=profile.path_length),
                critical=profile.basic_constraints_critical,
            )
        if profile.key_usage:
            builder = builder.add_extension(
                _key_usage(profile), critical=profile.key_usage_critical
            )
        if profile.extended_key_usage:
            builder = builder.add_extension(
                x509.ExtendedKeyUsage(
                    [EXTENDED_KEY_USAGE_OIDS[usage] for usage in profile.extended_key_usage]
                ),
                critical=False,
            )
        san = _subject_alt_name(profile)
        if san is not None:
            builder = builder.add_extension(san, critical=False)
        if profile.subject_key_identifier:
            builder = builder.add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
            )
        if profile.authority_key_identifier:
            builder = builder.add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_public_key),
                critical=False,
            )
        return builder

    @staticmethod
    def build_root_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_days: int,
        profile: ExtensionProfile,
        serial_number: int,
        algorithm: hashes.HashAlgorithm,
    ) -> x509.Certificate:
        """Build self-signed Root CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject (and issuer)
            private_key: RSA private key for signing
            validity_days: Certificate validity period in days
            profile: CA extension profile (v3_ca section of the policy)
            serial_number: Certificate serial
            algorithm: Signature digest

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(UTC)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        builder = CertificateBuilder.apply_extensions(
            builder, profile, private_key.public_key(), private_key.public_key()
        )

        return builder.sign(private_key, algorithm)

    @staticmethod
    def build_csr(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        profile: ExtensionProfile,
        algorithm: hashes.HashAlgorithm,
    ) -> x509.CertificateSigningRequest:
        """Build a CSR carrying the subject and its requested SANs."""
        builder = x509.CertificateSigningRequestBuilder().subject_name(subject_dn.to_x509_name())
        san = _subject_alt_name(profile)
        if san is not None:
            builder = builder.add_extension(san, critical=False)
        return builder.sign(private_key, algorithm)

    @staticmethod
    def build_server_certificate(
        csr: x509.CertificateSigningRequest,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        validity_days: int,
        profile: ExtensionProfile,
        serial_number: int,
        algorithm: hashes.HashAlgorithm,
    ) -> x509.Certificate:
        """Build server certificate from CSR, signed by the CA.

        The CSR's signature is checked first; subject and public key come from
        the CSR, extensions from the server profile.

        Raises:
            ValueError: If CSR signature is invalid or its key is not RSA
        """
        if not csr.is_signature_valid:
            raise ValueError("CSR signature validation failed")

        public_key = csr.public_key()
        if not isinstance(public_key, RSAPublicKey):
            raise ValueError("CSR public key must be RSA type")
        issuer_public_key = issuer_key.public_key()

        not_before = datetime.now(UTC)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        builder = CertificateBuilder.apply_extensions(
            builder, profile, public_key, issuer_public_key
        )

        return builder.sign(issuer_key, algorithm)
