from __future__ import annotations
import math
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix aware and naive values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounding up, unlike round()'s half-to-even."""
    return int(math.floor(value + 0.5))
