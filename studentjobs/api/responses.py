"""
Response envelope helpers.

Every successful body is `{success, message, statusCode, data, meta}`;
`meta.timestamp` is only included outside production.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request

from studentjobs.core.config import get_settings
from studentjobs.schemas.schemas import ApiResponse


def ok(data: Any = None, message: str = "Success", status_code: int = 200,
       meta: Optional[dict] = None) -> ApiResponse:
    if not get_settings().is_production:
        meta = {**(meta or {}), "timestamp": datetime.now(timezone.utc).isoformat()}
    return ApiResponse(success=True, message=message, status_code=status_code, data=data, meta=meta)


def client_info(request: Request) -> tuple:
    """(ip address, user agent) of the caller, honouring X-Forwarded-For."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")
