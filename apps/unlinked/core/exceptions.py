from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_500_INTERNAL_SERVER_ERROR

logger = logging.getLogger(__name__)


def _error_payload(
    *,
    error: str,
    type_: str,
    code: str | None = None,
    details: Any | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": error, "code": code, "type": type_}
    if details is not None:
        payload["details"] = details
    return payload


class UnlinkedException(Exception):
    """Base exception for the UnLinked service.

    Raised from service functions shared by the REST routes and the socket
    handlers. FastAPI translates them via the registered exception handlers;
    the socket layer turns them into an `error` event for the caller.
    """

    status_code: int = 400
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.status_code = status_code if status_code is not None else self.status_code
        self.details = details
        super().__init__(message)


class ValidationError(UnlinkedException):
    """Raised when input fails a business rule (empty content, missing field)."""

    status_code = 400
    default_code = "validation_error"


class AuthenticationError(UnlinkedException):
    """Raised when a token is missing, invalid, expired or names no user."""

    status_code = 401
    default_code = "authentication_failed"


class AuthorizationError(UnlinkedException):
    """Raised when the caller is authenticated but may not act on the target."""

    status_code = 403
    default_code = "forbidden"


class NotFoundError(UnlinkedException):
    """Raised when a chat, message, notification or user does not exist."""

    status_code = 404
    default_code = "not_found"


class ConfigurationError(UnlinkedException):
    """Raised when configuration is invalid (server-side)."""

    status_code = 500
    default_code = "configuration_error"


class ServiceUnavailableError(UnlinkedException):
    """Raised when an upstream dependency is unavailable."""

    status_code = 503
    default_code = "service_unavailable"


def register_exception_handlers(app: FastAPI) -> None:
    """Register the service's exception handlers on a FastAPI app."""

    @app.exception_handler(UnlinkedException)
    async def _unlinked_exception_handler(
        _request: Request, exc: UnlinkedException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                error=exc.message,
                code=exc.code,
                type_=exc.__class__.__name__,
                details=exc.details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_payload(
                error="Validation error",
                code="validation_error",
                type_=exc.__class__.__name__,
                details=exc.errors(),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = getattr(exc, "detail", None)
        if isinstance(detail, str):
            error = detail
            details = None
        else:
            error = "Request failed"
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                error=error,
                code="http_exception",
                type_=exc.__class__.__name__,
                details=details,
            ),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_payload(
                error="Internal server error",
                code="internal_error",
                type_="InternalServerError",
            ),
        )


__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "NotFoundError",
    "ServiceUnavailableError",
    "UnlinkedException",
    "ValidationError",
    "register_exception_handlers",
]
