"""Auth token cleanup tasks."""

from typing import Any

from filevault_core import get_logger
from filevault_core.services import PasswordlessService
from filevault_database import IdentityStore
from filevault_database.session import get_session_context

logger = get_logger(__name__)


async def cleanup_expired_auth_tokens(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete expired OTP and magic-link tokens, used or not."""
    async with get_session_context() as session:
        deleted = await PasswordlessService(IdentityStore(session)).cleanup_expired_tokens()

    logger.info("Auth token cleanup finished", extra={"deleted": deleted})
    return {"success": True, "deleted": deleted}


async def scheduled_cleanup_expired_auth_tokens(ctx: dict[str, Any]) -> dict[str, Any]:
    """Scheduled wrapper for hourly auth token cleanup."""
    return await cleanup_expired_auth_tokens(ctx)
