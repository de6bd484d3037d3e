# app/core/errors.py
"""
Error taxonomy for the collaboration ledger.

Every engine operation either returns the updated record or raises one of
the errors below. Transition errors always carry the entity's actual status
in ``details["current_status"]`` so clients can reconcile their view.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    VALIDATION = "validation_error"
    INVALID_AMOUNT = "invalid_amount"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_STATE = "invalid_state"
    ALREADY_SIGNED = "already_signed"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    GATEWAY_FAILURE = "gateway_failure"


class AppError(Exception):
    """Base class for business errors raised by the engines."""

    category = ErrorCategory.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST
    retry_after: Optional[int] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def current_status(self) -> Optional[str]:
        return self.details.get("current_status")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            **self.details,
        }


class ValidationError(AppError):
    category = ErrorCategory.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidAmount(AppError):
    category = ErrorCategory.INVALID_AMOUNT
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(AppError):
    category = ErrorCategory.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    category = ErrorCategory.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class TransitionError(AppError):
    """Raised when an action is not legal from the entity's current status."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if current_status is not None:
            merged["current_status"] = current_status
        super().__init__(message, merged)


class InvalidTransition(TransitionError):
    category = ErrorCategory.INVALID_TRANSITION


class InvalidState(TransitionError):
    category = ErrorCategory.INVALID_STATE


class AlreadySigned(TransitionError):
    category = ErrorCategory.ALREADY_SIGNED


class ConcurrentModification(TransitionError):
    """The row changed since it was read. Re-fetch and retry."""

    category = ErrorCategory.CONCURRENT_MODIFICATION


class GatewayFailure(TransitionError):
    """The payment gateway declined, failed or timed out. State is unchanged."""

    category = ErrorCategory.GATEWAY_FAILURE
    status_code = status.HTTP_502_BAD_GATEWAY
    retry_after = 5


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a JSON body with the entity's current status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.category.value} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.category.value} on {request.url.path}: {exc.message}")

    body = {
        "error": {
            **exc.to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        }
    }
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)
