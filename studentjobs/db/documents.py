"""
Document helpers shared by the services.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo.cursor import Cursor


def utcnow() -> datetime:
    """Naive UTC timestamp, the form pymongo hands back on reads."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict (ObjectIds become strings)."""
    if doc is None:
        return None
    return _convert(doc)


def serialize_docs(docs) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "current": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "total": total,
    }


def paginate(cursor: Cursor, page: int, limit: int) -> Cursor:
    return cursor.skip((page - 1) * limit).limit(limit)
