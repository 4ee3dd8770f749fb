# Overview: UTC time helpers shared by models, services and query-string parsing.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime; every stored timestamp uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read an ISO-8601 query/body value into naive UTC.

    Blank input gives None. Values without an offset are taken as UTC;
    "Z" and "+HH:MM" suffixes are converted. Malformed input raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None

    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as whole-second ISO-8601 with a trailing 'Z'."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def period_key(dt: datetime) -> str:
    """Calendar day bucket for daily sale number sequences (YYYYMMDD, UTC)."""
    return dt.strftime("%Y%m%d")
