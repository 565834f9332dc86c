"""
Custom exception hierarchy for the Narrata leaderboard API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class NarrataException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class UserNotFoundError(NarrataException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__(
            message=f"User {user_id} not found.",
            details={"user_id": user_id},
        )


class LeaderboardEntryNotFoundError(NarrataException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "LEADERBOARD_ENTRY_NOT_FOUND"

    def __init__(self, user_id: int):
        super().__init__(
            message=f"User {user_id} is not on the leaderboard.",
            details={"user_id": user_id},
        )


class StoryNotFoundError(NarrataException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "STORY_NOT_FOUND"

    def __init__(self, story_id: int):
        super().__init__(
            message=f"Story {story_id} not found.",
            details={"story_id": story_id},
        )


class StoryStateError(NarrataException):
    http_status = status.HTTP_409_CONFLICT
    code = "STORY_STATE_CONFLICT"

    def __init__(self, story_id: int, current: str, message: str):
        super().__init__(
            message=message,
            details={"story_id": story_id, "status": current},
        )


class InvalidTimeframeError(NarrataException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_TIMEFRAME"

    def __init__(self, value: str, allowed: list[str]):
        super().__init__(
            message=f"Unknown timeframe {value!r}. Expected one of: {', '.join(allowed)}.",
            details={"timeframe": value, "allowed": allowed},
        )


class BadgeValidationError(NarrataException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "BADGE_VALIDATION_ERROR"

    def __init__(self, message: str, field: str):
        super().__init__(message=message, details={"field": field})


class RankingBatchError(NarrataException):
    """
    Raised when the bulk ranking pass fails partway through.
    Entries committed before the failure keep their new ranks.
    """
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "RANKING_BATCH_FAILED"

    def __init__(self, committed: int, total: int, reason: str):
        self.committed = committed
        self.total = total
        super().__init__(
            message=f"Ranking pass failed after {committed} of {total} entries: {reason}",
            details={"committed": committed, "total": total},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def narrata_exception_handler(request: Request, exc: NarrataException) -> JSONResponse:
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
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
