"""
Error taxonomy.

Provider- and store-specific failures are remapped to these classes at the
service boundary; nothing provider-internal crosses it.
"""


class FileVaultError(Exception):
    """Base class for errors surfaced by FileVault services."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConflictError(FileVaultError):
    """The identity already exists."""


class UnauthorizedError(FileVaultError):
    """Authentication or verification failed."""


class BadRequestError(FileVaultError):
    """Malformed input."""


class ConfigurationError(FileVaultError):
    """Required configuration is missing or provider discovery failed."""


class DeliveryError(FileVaultError):
    """A notification could not be delivered."""
