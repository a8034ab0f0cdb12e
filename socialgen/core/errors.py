"""Error normalization and handlers."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from socialgen.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id

    def details(self) -> dict:
        return {}


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    """Lost a race with a concurrent write; the caller may retry."""
    code = "conflict"
    status_code = 409


class SubscriptionInactiveError(AppError):
    """The user's plan is not active (past_due); they must resubscribe."""
    code = "subscription_inactive"
    status_code = 403


class QuotaExceededError(AppError):
    """Quota for the current period is exhausted."""
    code = "limit_reached"
    status_code = 403

    def __init__(self, message: str, *, limit: int, resource_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.limit = limit
        self.resource_type = resource_type

    def details(self) -> dict:
        return {"limit": self.limit, "resource_type": self.resource_type}


class StoreUnavailableError(AppError):
    """Transient storage failure. The raw cause is never sent to clients."""
    code = "store_unavailable"
    status_code = 503


GENERIC_STORE_MESSAGE = "Something went wrong, please try again"

logger = logging.getLogger("socialgen")


def _request_id_for(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def _error_response(
    status_code: int,
    code: str,
    message,
    request_id: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    """`{"error": {code, message, request_id, ...details}, "detail": message}` plus x-request-id."""
    error = {"code": code, "message": message, "request_id": request_id}
    error.update(details or {})
    response = JSONResponse(status_code=status_code, content={"error": error, "detail": message})
    response.headers["x-request-id"] = request_id
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _request_id_for(request)
    # Driver details stay in the logs
    public_message = GENERIC_STORE_MESSAGE if isinstance(exc, StoreUnavailableError) else exc.message
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return _error_response(exc.status_code, exc.code, public_message, rid, exc.details())


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _request_id_for(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _error_response(exc.status_code, code, exc.detail or "HTTP error", rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id_for(request)
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return _error_response(500, "internal_error", "Unexpected error", rid)
