"""Identity store errors."""


class StoreError(Exception):
    """Base class for identity store failures."""


class RecordNotFoundError(StoreError):
    """A record looked up by a unique key does not exist."""


class UniqueConstraintError(StoreError):
    """A write violated a unique constraint (e.g. duplicate email)."""
