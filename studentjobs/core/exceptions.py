"""
Error taxonomy for the API and the services behind it.

Services raise these directly; FastAPI renders them through the handlers
registered in `register_exception_handlers`. Every error body has the same
shape as a success body minus `data`:

    {"success": false, "message": "...", "code": "...", "statusCode": 400}
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pymongo.errors import AutoReconnect, DuplicateKeyError, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Base class for every error raised on purpose
class StudentJobsException(HTTPException):
    def __init__(self, status_code: int, detail: str, code: str, headers: Dict[str, Any] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code


class ValidationException(StudentJobsException):
    def __init__(self, detail: str = "Invalid request", code: str = "VALIDATION_ERROR"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, code=code)


class AuthenticationException(StudentJobsException):
    def __init__(self, detail: str = "Authentication failed", code: str = "AUTHENTICATION_FAILED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code=code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationException(StudentJobsException):
    def __init__(self, detail: str = "Access denied", code: str = "ACCESS_DENIED"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail, code=code)


class NotFoundException(StudentJobsException):
    def __init__(self, detail: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail, code=code)


class ConflictException(StudentJobsException):
    def __init__(self, detail: str = "Duplicate key error", code: str = "DUPLICATE"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail, code=code)


def parse_object_id(value: Any, what: str = "resource") -> ObjectId:
    """Convert a path/body id into an ObjectId or fail with a 400."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationException(f"Invalid {what} id")


def duplicate_field(exc: DuplicateKeyError) -> str:
    """Best-effort name of the field that violated a unique index."""
    details = exc.details or {}
    key_value = details.get("keyValue") or details.get("keyPattern") or {}
    if key_value:
        return ", ".join(key_value.keys())
    return "record"


def retry_with_backoff(fn: Callable[[], T], retries: int = 3, base_delay: float = 0.5) -> T:
    """
    Call `fn`, retrying transient MongoDB connection failures.

    Delay doubles after every failed attempt (0.5s, 1s, 2s...). The last
    failure is re-raised.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except (AutoReconnect, ServerSelectionTimeoutError) as exc:
            attempt += 1
            if attempt > retries:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("MongoDB unavailable (%s), retry %s/%s in %.1fs", exc, attempt, retries, delay)
            time.sleep(delay)


# ============================================================
# FASTAPI HANDLERS
# ============================================================

def _error_body(status_code: int, message: str, code: Optional[str]) -> dict:
    return {
        "success": False,
        "message": message,
        "code": code,
        "statusCode": status_code,
    }


async def studentjobs_exception_handler(request: Request, exc: StudentJobsException) -> JSONResponse:
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail, exc.code),
        headers=exc.headers,
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    message = f"{duplicate_field(exc)} already exists"
    logger.warning("%s %s -> 409 %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(status.HTTP_409_CONFLICT, message, "DUPLICATE"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudentJobsException, studentjobs_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
