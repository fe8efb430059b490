"""CA store: creation and lookup of the on-disk CA Directory."""

import os
from pathlib import Path

from ca_tool.lib.cert_utils import generate_serial_seed
from ca_tool.lib.config import CAConfig, DistinguishedName
from ca_tool.lib.errors import (
    AlreadyExistsError,
    CANotFoundError,
    CAToolError,
    InvalidInputError,
    PermissionWarning,
)
from ca_tool.lib.logging_config import LOGGER
from ca_tool.lib.models import CAPaths, CAResult
from ca_tool.lib.pki_provider import PKIProvider, get_provider
from ca_tool.lib.signing_policy import SigningPolicy

CA_KEY_MODE = 0o400


def _claim(path: Path) -> None:
    """Exclusively create an empty file, so only one creator can own it.

    Raises:
        AlreadyExistsError: If the file already exists
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError as e:
        raise AlreadyExistsError(
            f"{path.name} already exists in {path.parent}; "
            "another CA creation is in progress or a previous one did not finish"
        ) from e
    os.close(fd)


class CAStore:
    """Certificate Authority store rooted at one CA Directory per operation."""

    def __init__(self, config: CAConfig, provider: PKIProvider | None = None) -> None:
        """Initialize CA store.

        Args:
            config: Tool configuration (key sizes, validity, provider choice)
            provider: PKI provider; defaults to the one config selects
        """
        self.config = config
        self.provider = provider or get_provider(config)

    def create_ca(self, output_path: str | Path, organization_name: str | None = None) -> CAResult:
        """Create a new CA in output_path.

        Writes openssl.cnf, an empty ca.index and a random ca.srl, generates
        ca.key (restricted to the owner, best-effort) and a self-signed ca.crt
        with CN "<organization> Root CA".

        Args:
            output_path: CA Directory to create (created if absent)
            organization_name: Organization for the root subject

        Returns:
            CAResult with paths and the CA certificate summary

        Raises:
            InvalidInputError: If output_path is empty
            AlreadyExistsError: If a CA (key and certificate) already exists there
            SigningFailedError: If the PKI toolkit fails
        """
        if not output_path or not str(output_path).strip():
            raise InvalidInputError("output directory is required")
        organization = organization_name or self.config.default_organization

        root = Path(output_path)
        paths = CAPaths.for_directory(root)
        if not root.exists():
            root.mkdir(parents=True, exist_ok=True)
            LOGGER.info("Created output directory: %s", root)

        if paths.key_path.exists() and paths.cert_path.exists():
            raise AlreadyExistsError(f"CA already exists in {root}")

        _claim(paths.key_path)
        claimed = [paths.key_path]
        try:
            _claim(paths.cert_path)
            claimed.append(paths.cert_path)

            policy = SigningPolicy(
                default_days=self.config.server_validity_days,
                ca_key_bits=self.config.ca_key_size,
                server_key_bits=self.config.server_key_size,
                ca_validity_days=self.config.ca_validity_days,
            )
            paths.config_path.write_text(policy.render_ca_config(root.resolve()))
            LOGGER.info("Created signing policy at: %s", paths.config_path)
            paths.index_path.write_text("")
            paths.serial_path.write_text(generate_serial_seed() + "\n")

            LOGGER.info("Generating CA private key...")
            self.provider.gen_key(paths.key_path, policy.ca_key_bits)
            permissions_restricted = self._restrict_key(paths.key_path)

            LOGGER.info("Generating CA certificate...")
            self.provider.self_sign(
                key_path=paths.key_path,
                config_path=paths.config_path,
                cert_path=paths.cert_path,
                subject=DistinguishedName(
                    organization=organization,
                    common_name=f"{organization} Root CA",
                ),
                days=policy.ca_validity_days,
                digest=policy.default_md,
            )
        except (CAToolError, OSError):
            for path in claimed:
                path.unlink(missing_ok=True)
            raise

        return CAResult(
            paths=paths,
            summary=self.provider.inspect(paths.cert_path),
            permissions_restricted=permissions_restricted,
        )

    @staticmethod
    def _restrict_key(key_path: Path) -> bool:
        """Make the CA key owner-read-only; failure is a logged warning, not an error."""
        try:
            key_path.chmod(CA_KEY_MODE)
        except OSError as e:
            LOGGER.warning(
                "%s: could not set restrictive permissions on CA key: %s", PermissionWarning.__name__, e
            )
            return False
        return True

    @staticmethod
    def locate_ca(ca_directory: str | Path) -> CAPaths:
        """Return the paths of an existing CA.

        Raises:
            InvalidInputError: If ca_directory is empty
            CANotFoundError: If ca.key or ca.crt is missing
        """
        if not ca_directory or not str(ca_directory).strip():
            raise InvalidInputError("CA directory is required")
        paths = CAPaths.for_directory(Path(ca_directory))
        if not paths.key_path.is_file() or not paths.cert_path.is_file():
            raise CANotFoundError(f"CA not found in {ca_directory}")
        return paths
