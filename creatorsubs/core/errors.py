"""Error taxonomy and HTTP handlers for the subscription engine."""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from creatorsubs.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


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


# Families

class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class RecordStoreError(AppError):
    """Infrastructure failure inside the record store. Never retried here."""
    code = "store_error"
    status_code = 500


# Not found

class PlanNotFoundError(NotFoundError):
    code = "plan_not_found"


class SubscriptionNotFoundError(NotFoundError):
    code = "subscription_not_found"


class PromoCodeNotFoundError(NotFoundError):
    code = "promo_code_not_found"


# Authorization

class ForbiddenError(PermissionError):
    code = "forbidden"


class PlanCreatorMismatchError(PermissionError):
    code = "plan_creator_mismatch"


class NotAuthorizedError(PermissionError):
    code = "not_authorized"


# State

class PlanInactiveError(ConflictError):
    code = "plan_inactive"


class AlreadySubscribedError(ConflictError):
    code = "already_subscribed"


class AlreadyInactiveError(ConflictError):
    code = "already_inactive"


# Input

class PriceOutOfBoundsError(ValidationError):
    code = "price_out_of_bounds"


class SelfSubscriptionForbiddenError(ValidationError):
    code = "self_subscription_forbidden"


class InvalidPromoError(ValidationError):
    code = "invalid_promo"


class PromoExpiredError(ValidationError):
    code = "promo_expired"


class InvalidPlanError(ValidationError):
    code = "invalid_plan"


class TypeMismatchError(ValidationError):
    code = "type_mismatch"


_HTTP_CODES = {401: "unauthorized", 403: "forbidden", 404: "not_found", 405: "method_not_allowed"}


def _render(request: Request, status_code: int, code: str, message: str, request_id: Optional[str] = None) -> JSONResponse:
    rid = (
        request_id
        or getattr(request.state, "request_id", None)
        or get_request_id()
        or uuid4().hex
    )
    level = logging.ERROR if status_code >= 500 else logging.WARNING
    logger.log(level, "request.error", extra={"request_id": rid, "error_code": code, "status": status_code})
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "request_id": rid}, "detail": message},
        headers={"x-request-id": rid},
    )


async def app_error_handler(request: Request, exc: AppError):
    return _render(request, exc.status_code, exc.code, exc.message, exc.request_id)


async def http_error_handler(request: Request, exc: HTTPException):
    code = _HTTP_CODES.get(exc.status_code, "http_error")
    return _render(request, exc.status_code, code, str(exc.detail or "HTTP error"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=exc)
    return _render(request, 500, "internal_error", "Unexpected error")
