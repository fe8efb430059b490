"""Error taxonomy for CA tool operations."""


class CAToolError(Exception):
    """Base class for fatal CA tool errors."""


class InvalidInputError(CAToolError):
    """Raised when a required argument is missing or malformed."""


class AlreadyExistsError(CAToolError):
    """Raised when a CA is already present in the target directory."""


class NotFoundError(CAToolError):
    """Raised when a CA directory or certificate file is missing."""


class CANotFoundError(NotFoundError):
    """Raised when the CA key or certificate cannot be located."""


class SigningFailedError(CAToolError):
    """Raised when the PKI toolkit fails to generate, sign or inspect material.

    Attributes:
        diagnostic: Raw diagnostic text reported by the toolkit (may be empty)
    """

    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic

    def __str__(self) -> str:
        message = super().__str__()
        if self.diagnostic:
            return f"{message}: {self.diagnostic.strip()}"
        return message


class PermissionWarning(UserWarning):
    """Non-fatal: private key permissions could not be restricted."""
