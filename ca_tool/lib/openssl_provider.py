"""PKI provider that shells out to the openssl command line tool."""

import subprocess
from datetime import UTC, datetime
from pathlib import Path

from ca_tool.lib.cert_utils import format_serial
from ca_tool.lib.config import DistinguishedName
from ca_tool.lib.errors import SigningFailedError
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CAPaths, CertificateSummary, VerificationResult
from ca_tool.lib.signing_policy import CA_EXTENSIONS_SECTION

OPENSSL_DATE_FORMAT = "%b %d %H:%M:%S %Y"


def _parse_openssl_date(value: str) -> datetime:
    """Parse e.g. 'Oct  8 12:00:00 2026 GMT' as an aware UTC datetime."""
    value = value.strip()
    if value.endswith(" GMT"):
        value = value[: -len(" GMT")]
    return datetime.strptime(value, OPENSSL_DATE_FORMAT).replace(tzinfo=UTC)


class OpenSSLProvider:
    """PKIProvider that runs `openssl` subprocesses.

    Arguments are always passed as an argv list, never through a shell.
    """

    def __init__(self, openssl_path: str = "openssl") -> None:
        self.openssl_path = openssl_path

    def _run(self, args: list[str], require_status: int | None = 0) -> subprocess.CompletedProcess[str]:
        """Invoke openssl; a launch failure or unexpected exit raises SigningFailedError."""
        argv = [self.openssl_path, *args]
        LOGGER.debug("Running %s", " ".join(argv))
        try:
            result = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise SigningFailedError(f"could not run {self.openssl_path}", diagnostic=str(e)) from e
        if require_status is not None and result.returncode != require_status:
            raise SigningFailedError(
                f"openssl {args[0]} exited with status {result.returncode}",
                diagnostic=result.stderr or result.stdout,
            )
        return result

    def gen_key(self, key_path: Path, bits: int) -> None:
        """Run `openssl genrsa`."""
        self._run(["genrsa", "-out", str(key_path), str(bits)])

    def gen_csr(self, key_path: Path, config_path: Path, csr_path: Path) -> None:
        """Run `openssl req -new` with the request config."""
        self._run(
            ["req", "-new", "-key", str(key_path), "-out", str(csr_path), "-config", str(config_path)]
        )

    def self_sign(
        self,
        key_path: Path,
        config_path: Path,
        cert_path: Path,
        subject: DistinguishedName,
        days: int,
        digest: str,
    ) -> None:
        """Run `openssl req -x509` with the v3_ca extensions and an explicit subject."""
        self._run(
            [
                "req",
                "-config", str(config_path),
                "-key", str(key_path),
                "-new",
                "-x509",
                "-days", str(days),
                f"-{digest}",
                "-extensions", CA_EXTENSIONS_SECTION,
                "-out", str(cert_path),
                "-subj", subject.to_openssl_subject(),
            ]
        )

    def sign(
        self,
        csr_path: Path,
        ca: CAPaths,
        config_path: Path,
        extensions_section: str,
        cert_path: Path,
        days: int,
        digest: str,
    ) -> None:
        """Run `openssl x509 -req`; openssl advances the CA serial file itself.

        Args:
            csr_path: PEM CSR to sign
            ca: Paths of the issuing CA
            config_path: Config passed as -extfile
            extensions_section: Section of config_path to apply
            cert_path: Destination for the PEM certificate
            days: Validity period in days
            digest: Signature hash name, e.g. sha256
        """
        self._run(
            [
                "x509",
                "-req",
                "-in", str(csr_path),
                "-CA", str(ca.cert_path),
                "-CAkey", str(ca.key_path),
                "-CAserial", str(ca.serial_path),
                "-out", str(cert_path),
                "-days", str(days),
                f"-{digest}",
                "-extensions", extensions_section,
                "-extfile", str(config_path),
            ]
        )

    def inspect(self, cert_path: Path) -> CertificateSummary:
        """Parse subject, issuer, dates and serial printed by `openssl x509`.

        Raises:
            SigningFailedError: If openssl fails or its output is incomplete
        """
        result = self._run(
            [
                "x509",
                "-in", str(cert_path),
                "-noout",
                "-nameopt", "RFC2253",
                "-subject", "-issuer", "-dates", "-serial",
            ]
        )
        fields: dict[str, str] = {}
        for line in result.stdout.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                fields[key.strip()] = value.strip()
        try:
            return CertificateSummary(
                subject=fields["subject"],
                issuer=fields["issuer"],
                not_before=_parse_openssl_date(fields["notBefore"]),
                not_after=_parse_openssl_date(fields["notAfter"]),
                serial=format_serial(int(fields["serial"], 16)),
            )
        except (KeyError, ValueError) as e:
            raise SigningFailedError(
                "openssl returned invalid certificate metadata", diagnostic=result.stdout
            ) from e

    def render_text(self, cert_path: Path) -> str:
        """Return `openssl x509 -text` output."""
        return self._run(["x509", "-in", str(cert_path), "-text", "-noout"]).stdout

    def verify(self, cert_path: Path, ca_cert_path: Path) -> VerificationResult:
        """Run `openssl verify`; a non-zero exit is a failed result, not an error."""
        result = self._run(
            ["verify", "-CAfile", str(ca_cert_path), str(cert_path)], require_status=None
        )
        if result.returncode == 0:
            return VerificationResult(ok=True, detail=result.stdout.strip())
        return VerificationResult(ok=False, detail=(result.stderr or result.stdout).strip())
