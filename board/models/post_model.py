from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


# Python attribute -> document key
DOCUMENT_KEYS = {
    "title": "title",
    "author": "author",
    "content": "content",
    "owner_id": "ownerId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision of BSON dates."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def next_update_time(previous: datetime) -> datetime:
    """Return a timestamp strictly later than ``previous``."""
    now = utcnow()
    previous = _as_utc(previous)
    if now <= previous:
        return previous + timedelta(milliseconds=1)
    return now


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with exactly three fractional digits, e.g. ``2024-01-01T00:00:00.000Z``."""
    return _as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Post:
    id: str
    title: str
    author: str
    content: str
    created_at: datetime
    updated_at: datetime
    owner_id: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Post":
        return cls(
            id=str(document["_id"]),
            title=document.get("title", ""),
            author=document.get("author", ""),
            content=document.get("content", ""),
            created_at=_as_utc(document["createdAt"]),
            updated_at=_as_utc(document["updatedAt"]),
            owner_id=document.get("ownerId"),
        )


def to_document_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {DOCUMENT_KEYS[name]: value for name, value in fields.items()}
