"""Shared date parsing and display helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except Exception:
        pass
    for fmt in ("%Y/%m/%d", "%m/%d/%Y", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(cleaned, fmt)
        except Exception:
            continue
    return None


def parse_timestamp(value: Any) -> date | None:
    """Convert mixed timestamp inputs (ISO text, epoch millis, datetimes) into a local date.

    Aware timestamps are shifted into the local timezone before taking the date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        # Naive timestamps are already local wall-clock time.
        if value.tzinfo is None:
            return value.date()
        return value.astimezone().date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, timezone.utc).astimezone().date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        token = value.strip()
        if _DATE_ONLY_RE.match(token):
            try:
                return date.fromisoformat(token)
            except ValueError:
                return None
        parsed = _parse_datetime_token(token)
        if parsed is None:
            return None
        return parse_timestamp(parsed)
    return None


def format_display_date(value: Any) -> str:
    """Render a timestamp as ``M/D/YYYY``; unparseable input yields ``""``."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def today_display() -> str:
    return format_display_date(date.today())
