"""
FileVault API - FastAPI application entry point.

This module initializes the FastAPI application and configures
middleware, routers, and lifecycle events.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from filevault_core import get_logger, init_logging
from filevault_core.auth.providers import CognitoIdentityClient, OIDCProvider
from filevault_core.config import (
    AuthProviderConfig,
    MailConfig,
    auth_provider_config,
    mail_config,
)
from filevault_core.services import NotificationService
from filevault_database.session import close_database, create_all, init_database

from .config import Settings, settings as default_settings
from .errors import register_exception_handlers
from .routers import auth, oidc, passwordless, users

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifecycle manager.

    Provider discovery is a startup barrier: if it fails, the application
    does not start.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    auth_config: AuthProviderConfig = app.state.auth_config

    init_logging(settings.log_level, settings.json_logs)
    logger.info(
        "Starting FileVault API",
        extra={"version": settings.version, "environment": settings.environment},
    )

    init_database(settings.database_url, echo=settings.debug)
    provider: OIDCProvider | None = None
    try:
        if settings.database_auto_create:
            await create_all()

        provider = OIDCProvider.from_settings(auth_config)
        await provider.initialize()
        logger.info("OIDC provider initialized", extra={"issuer": provider.issuer})
    except Exception:
        logger.exception("Startup failed")
        if provider is not None:
            await provider.close()
        await close_database()
        raise

    app.state.oidc_provider = provider
    app.state.cognito_client = CognitoIdentityClient(auth_config)
    app.state.notifier = NotificationService(app.state.mail_config)

    yield

    # Shutdown: Cleanup resources
    await provider.close()
    await close_database()
    logger.info("Shutting down FileVault API")


def create_app(
    settings: Settings | None = None,
    auth_config: AuthProviderConfig | None = None,
    mail: MailConfig | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance."""
    settings = settings or default_settings
    prefix = settings.api_prefix

    app = FastAPI(
        title=settings.app_name,
        description="FileVault - Cloud File Storage API",
        version=settings.version,
        lifespan=lifespan,
        docs_url=f"{prefix}/docs" if settings.debug else None,
        redoc_url=f"{prefix}/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.auth_config = auth_config or auth_provider_config
    app.state.mail_config = mail or mail_config

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )

    register_exception_handlers(app)

    # Register API routers
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(
        passwordless.router, prefix=f"{prefix}/auth/passwordless", tags=["Passwordless"]
    )
    app.include_router(oidc.router, prefix=f"{prefix}/auth/oidc", tags=["OIDC"])
    app.include_router(users.router, prefix=f"{prefix}/users", tags=["Users"])

    @app.get(f"{prefix}/health")
    async def health_check() -> dict[str, str]:
        """
        Health check endpoint.

        Returns:
            Dictionary containing service status and version.
        """
        return {"status": "healthy", "version": settings.version}

    return app


app = create_app()
