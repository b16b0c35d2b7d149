"""Custom SQLAlchemy types used by the persistence layer."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.types import Text, TypeDecorator

from garden.errors import StorageError


class UTCDateTime(TypeDecorator[datetime]):
    """Store aware datetimes as ISO-8601 UTC text with microseconds.

    The fixed-width text form sorts lexicographically in time order, so
    ``ORDER BY created_at`` works without a native datetime type. Naive values
    are assumed to be UTC already.
    """

    cache_ok = True
    impl = Text

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[str]:  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, str):
            value = _parse(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")

    def process_result_value(self, value: Optional[str], dialect) -> Optional[datetime]:  # type: ignore[override]
        if value is None:
            return None
        return _parse(value)


def _parse(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise StorageError(f"invalid stored timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
