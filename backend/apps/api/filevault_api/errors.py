"""
Exception handlers.

Maps the application error taxonomy onto HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from filevault_core import get_logger
from filevault_core.exceptions import (
    BadRequestError,
    ConflictError,
    DeliveryError,
    FileVaultError,
    UnauthorizedError,
)

logger = get_logger(__name__)

_STATUS_CODES: dict[type[FileVaultError], int] = {
    ConflictError: status.HTTP_409_CONFLICT,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    DeliveryError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(error: FileVaultError) -> int:
    """HTTP status for an application error; unknown kinds are upstream failures."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_502_BAD_GATEWAY


async def filevault_error_handler(request: Request, exc: FileVaultError) -> JSONResponse:
    status_code = status_code_for(exc)
    headers = None
    if isinstance(exc, UnauthorizedError) and "authorization" in request.headers:
        headers = {"WWW-Authenticate": "Bearer"}
    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": exc.message, "status": status_code},
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileVaultError, filevault_error_handler)
