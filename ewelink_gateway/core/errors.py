"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and a user-facing message.
The handlers registered by :func:`register_exception_handlers` render them
as ``{"error": 1, "msg": ...}`` bodies.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class GatewayAppError(Exception):
    """Base class for failures reported to API clients."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_msg = "Internal error"

    def __init__(self, msg: str | None = None) -> None:
        self.msg = msg or self.default_msg
        super().__init__(self.msg)


class UnauthenticatedError(GatewayAppError):
    """No session binding, or no credential for the bound user."""

    status_code = HTTPStatus.UNAUTHORIZED
    default_msg = "Not authenticated"


class SessionExpiredError(GatewayAppError):
    """The refresh token itself has expired; a full login is required."""

    status_code = HTTPStatus.UNAUTHORIZED
    default_msg = "Token expired, please login again"


class RefreshFailedError(GatewayAppError):
    """The remote refresh call was rejected or errored."""

    status_code = HTTPStatus.BAD_GATEWAY
    default_msg = "Failed to refresh access token, please retry or login again"


class RemoteGatewayError(GatewayAppError):
    """A call to the eWeLink platform failed."""

    status_code = HTTPStatus.BAD_GATEWAY
    default_msg = "eWeLink request failed"

    def __init__(self, msg: str | None = None, *, remote_code: int | None = None) -> None:
        super().__init__(msg)
        self.remote_code = remote_code


class RequestValidationFailure(GatewayAppError):
    """Missing or invalid request fields."""

    status_code = HTTPStatus.BAD_REQUEST
    default_msg = "Invalid request"


class InvalidOAuthStateError(RequestValidationFailure):
    default_msg = "Invalid OAuth state"


class CredentialStoreError(GatewayAppError):
    """The credential storage medium could not be read or written."""

    default_msg = "Credential storage unavailable"


def error_body(msg: str) -> dict:
    return {"error": 1, "msg": msg}


async def _handle_gateway_error(request: Request, exc: GatewayAppError) -> JSONResponse:
    if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.msg)
    return JSONResponse(status_code=int(exc.status_code), content=error_body(exc.msg))


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "body")
        problems.append(f"{location}: {item.get('msg')}" if location else item.get("msg"))
    msg = "; ".join(problems) or RequestValidationFailure.default_msg
    return JSONResponse(status_code=HTTPStatus.BAD_REQUEST, content=error_body(msg))


async def _handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content=error_body(GatewayAppError.default_msg),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ``{error, msg}`` renderers on ``app``."""
    app.add_exception_handler(GatewayAppError, _handle_gateway_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)


__all__ = [
    "CredentialStoreError",
    "GatewayAppError",
    "InvalidOAuthStateError",
    "RefreshFailedError",
    "RemoteGatewayError",
    "RequestValidationFailure",
    "SessionExpiredError",
    "UnauthenticatedError",
    "error_body",
    "register_exception_handlers",
]
