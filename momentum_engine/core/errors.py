"""
Custom exception hierarchy for the momentum engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages, and a `toast` the client
shows as-is. No failure is silent and none is retried server-side.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class MomentumException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    toast_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        payload["toast"] = {"message": self.toast_message, "type": "error"}
        return payload


class UserNotFoundError(MomentumException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"
    toast_message = "We couldn't find your account."

    def __init__(self, email: str):
        super().__init__(
            message=f"No user with email {email}.",
            details={"email": email},
        )


class MissingAnchorError(MomentumException):
    """No firstCheckinDate: windowed calculations cannot run for this user."""
    http_status = status.HTTP_409_CONFLICT
    code = "MISSING_ANCHOR"
    toast_message = "Complete your first check-in to unlock your stats."

    def __init__(self, email: str):
        super().__init__(
            message=f"User {email} has no firstCheckinDate.",
            details={"email": email},
        )


class DuplicateCheckinError(MomentumException):
    http_status = status.HTTP_409_CONFLICT
    code = "CHECKIN_ALREADY_EXISTS"
    toast_message = "You've already checked in today."

    def __init__(self, day: date):
        super().__init__(
            message=f"A check-in for {day} already exists.",
            details={"date": day.isoformat()},
        )


class RecordNotFoundError(MomentumException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "RECORD_NOT_FOUND"
    toast_message = "No check-in for that day."

    def __init__(self, day: date):
        super().__init__(
            message=f"No momentum record for {day}.",
            details={"date": day.isoformat()},
        )


class InvalidCheckinDateError(MomentumException):
    """Check-ins are append-only: no future dates, none behind stored records."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_CHECKIN_DATE"
    toast_message = "You can only check in for today."

    def __init__(self, day: date, reason: str):
        super().__init__(
            message=f"Cannot check in for {day}: {reason}.",
            details={"date": day.isoformat(), "reason": reason},
        )


class FocusNotFoundError(MomentumException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "FOCUS_NOT_FOUND"
    toast_message = "Focus not found."

    def __init__(self, email: str):
        super().__init__(
            message=f"User {email} has no current focus habit.",
            details={"email": email},
        )


class CommitmentNotFoundError(MomentumException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "COMMITMENT_NOT_FOUND"
    toast_message = "No commitment to update."

    def __init__(self, email: str):
        super().__init__(
            message=f"User {email} has no commitment.",
            details={"email": email},
        )


class InvalidCommitmentTransitionError(MomentumException):
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_COMMITMENT_TRANSITION"
    toast_message = "That commitment can't be changed right now."

    def __init__(self, current: str, action: str):
        super().__init__(
            message=f"Cannot {action} a commitment in state '{current}'.",
            details={"state": current, "action": action},
        )


class NoNextLevelError(MomentumException):
    http_status = status.HTTP_409_CONFLICT
    code = "NO_NEXT_LEVEL"
    toast_message = "You're already at the top level for this habit."

    def __init__(self, habit_key: str):
        super().__init__(
            message=f"No next level available for {habit_key}.",
            details={"habit_key": habit_key},
        )


class LevelUpNotPendingError(MomentumException):
    http_status = status.HTTP_409_CONFLICT
    code = "LEVEL_UP_NOT_PENDING"
    toast_message = "There's no level-up waiting for you yet."

    def __init__(self, email: str):
        super().__init__(
            message=f"User {email} has no pending level-up prompt.",
            details={"email": email},
        )


class InvalidTargetError(MomentumException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_TARGET"
    toast_message = "Pick a different target."

    def __init__(self, target: int, reason: str):
        super().__init__(
            message=f"Target {target} rejected: {reason}.",
            details={"target": target, "reason": reason},
        )


class StoreUnavailableError(MomentumException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"
    toast_message = "Failed to save. Please try again."

    def __init__(self, operation: str):
        super().__init__(
            message=f"Record store failure during {operation}.",
            details={"operation": operation},
        )


class CoachingTriggerError(MomentumException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "COACHING_TRIGGER_FAILED"
    toast_message = "Couldn't start your weekly coaching. Try again later."

    def __init__(self, week_id: str, reason: str):
        super().__init__(
            message=f"Weekly coaching trigger for {week_id} failed: {reason}",
            details={"week_id": week_id},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def momentum_exception_handler(request: Request, exc: MomentumException) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
            "toast": {"message": "Please check your answers.", "type": "error"},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
            "toast": {"message": "Something went wrong. Please try again.", "type": "error"},
        },
    )
