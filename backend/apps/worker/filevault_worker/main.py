"""
FileVault Worker - arq entry point.

Run with ``arq filevault_worker.main.WorkerSettings``.
"""

from typing import Any

from arq import cron
from arq.connections import RedisSettings

from filevault_core import get_logger, init_logging
from filevault_database.session import close_database, init_database

from .config import settings
from .tasks.cleanup import cleanup_expired_auth_tokens, scheduled_cleanup_expired_auth_tokens

logger = get_logger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    init_logging(settings.log_level, settings.json_logs)
    init_database(settings.database_url)
    logger.info("FileVault worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    await close_database()
    logger.info("FileVault worker stopped")


class WorkerSettings:
    """arq worker settings."""

    functions = [cleanup_expired_auth_tokens]
    cron_jobs = [
        # Hourly, on the hour
        cron(scheduled_cleanup_expired_auth_tokens, minute=0, run_at_startup=False),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
