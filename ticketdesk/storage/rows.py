from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


def ensure_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromisoformat(str(value))


def db_value(value: Any) -> Any:
    """Unwrap enum members before handing values to asyncpg."""

    if isinstance(value, Enum):
        return value.value
    return value


def optional_int(value: Any) -> int | None:
    return None if value is None else int(value)
