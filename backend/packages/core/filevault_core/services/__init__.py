"""
Service layer.

Business logic services for the application.
"""

from .auth_service import AuthService
from .identity_service import IdentityService, names_from_email, normalize_email
from .notification_service import NotificationSender, NotificationService
from .oidc_service import OIDCService
from .passwordless_service import PasswordlessService

__all__ = [
    "AuthService",
    "IdentityService",
    "NotificationSender",
    "NotificationService",
    "OIDCService",
    "PasswordlessService",
    "names_from_email",
    "normalize_email",
]
