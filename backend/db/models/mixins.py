from datetime import datetime, timezone
from typing import Optional
import uuid
from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so every stored time is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """Render a stored timestamp as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
