from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now', tz-aware UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value) -> datetime:
    """Parse 'YYYY-MM-DD' or ISO-8601 (trailing Z accepted) into aware UTC."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    s = str(value).strip()
    if s.endswith('Z'):
        s = s[:-1] + '+00:00'
    return ensure_aware(datetime.fromisoformat(s))


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return ensure_aware(dt).isoformat().replace('+00:00', 'Z')
