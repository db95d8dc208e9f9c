from __future__ import annotations

from datetime import datetime, timezone


def as_utc(ts: datetime | None) -> datetime | None:
    """Naive timestamps from the API are UTC."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts
