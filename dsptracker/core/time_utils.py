"""UTC helpers for row timestamps.

Rows are written with aware UTC datetimes. SQLite hands them back naive, so
reads go through ensure_aware_utc() before they leave the package.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return dt in UTC; a naive value is taken to be UTC already."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """Render as `yyyy-mm-ddTHH:MM:ss[.SSS]Z` (milliseconds only when non-zero)."""
    utc = ensure_aware_utc(dt)
    if utc is None:
        return None
    text = utc.strftime("%Y-%m-%dT%H:%M:%S")
    millis = utc.microsecond // 1000
    if millis:
        text += f".{millis:03d}"
    return text + "Z"


__all__ = [
    "utc_now",
    "ensure_aware_utc",
    "isoformat_utc",
]
