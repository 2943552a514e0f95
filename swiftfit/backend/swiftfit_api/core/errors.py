"""Domain errors and their HTTP rendering.

Services raise these before touching the database; the handlers installed by
:func:`install_error_handlers` turn them into ``{"error": ..., "code": ...}``
bodies so routes never have to translate them.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StudioError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(StudioError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_INPUT"


class AuthError(StudioError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"


class ForbiddenError(StudioError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(StudioError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(StudioError):
    """Unique-constraint style conflicts, reported as a bad request."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "CONFLICT"


class CapacityError(StudioError):
    status_code = status.HTTP_409_CONFLICT
    code = "CLASS_FULL"


class RateLimitError(StudioError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"


class ConfigurationError(StudioError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "NOT_CONFIGURED"


class UpstreamError(StudioError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_ERROR"


class ClassNotFound(NotFoundError):
    code = "CLASS_NOT_FOUND"

    def __init__(self, class_id: int | None = None) -> None:
        super().__init__("Class not found")
        self.class_id = class_id


class BookingNotFound(NotFoundError):
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: int | None = None) -> None:
        super().__init__("Booking not found")
        self.booking_id = booking_id


class PurchaseNotFound(NotFoundError):
    code = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: int | None = None) -> None:
        super().__init__("Purchase not found")
        self.purchase_id = purchase_id


class NoActivePurchases(NotFoundError):
    code = "NO_ACTIVE_PURCHASES"

    def __init__(self) -> None:
        super().__init__("No active purchases found for this student")


class ClassFull(CapacityError):
    def __init__(self) -> None:
        super().__init__("Class is full", "CLASS_FULL")


class InsufficientCredits(ValidationError):
    code = "INSUFFICIENT_CREDITS"

    def __init__(self) -> None:
        super().__init__("No active package or membership with available credits")


class AlreadyOnWaitlist(StudioError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_ON_WAITLIST"

    def __init__(self) -> None:
        super().__init__("Student is already on the waitlist")


class InvalidPurchaseType(ValidationError):
    code = "INVALID_PURCHASE_TYPE"

    def __init__(self) -> None:
        super().__init__("Auto-renewal is only available for memberships")


__all__ = [
    "StudioError",
    "ValidationError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "CapacityError",
    "RateLimitError",
    "ConfigurationError",
    "UpstreamError",
    "ClassNotFound",
    "BookingNotFound",
    "PurchaseNotFound",
    "NoActivePurchases",
    "ClassFull",
    "InsufficientCredits",
    "InvalidPurchaseType",
    "AlreadyOnWaitlist",
    "install_error_handlers",
]


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StudioError)
    async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed: %s",
                exc.message,
                extra={"path": request.url.path, "code": exc.code},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict()),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = jsonable_encoder(exc.errors())
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": message, "code": "INVALID_INPUT", "details": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Internal server error: {exc}", "code": "INTERNAL_ERROR"},
        )
