"""
FileVault Database Package.

SQLAlchemy models, session management and the identity store.
"""

from .exceptions import RecordNotFoundError, StoreError, UniqueConstraintError
from .identity_store import IdentityStore
from .models import Base

__all__ = [
    "Base",
    "IdentityStore",
    "StoreError",
    "RecordNotFoundError",
    "UniqueConstraintError",
]
