"""
Time Parsing and Formatting Utilities

Filter time-of-day normalization, ping timestamp normalization to
ISO-8601 UTC, and the relative "last ping" label.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional


_PLAIN_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_AMPM_TIME = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")

# Largest instant a browser Date can hold (+/- 100 000 000 days)
MAX_EPOCH_MS = 8.64e15


def normalize_time_24h(value: Optional[str]) -> Optional[str]:
    """
    Normalize a time-of-day string to "HH:MM"

    Accepts 24h "H:MM" / "HH:MM" / "HH:MM:SS" and 12h "H:MM AM".

    Returns:
        "HH:MM" or None if malformed or out of range
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None

    plain = _PLAIN_TIME.match(trimmed)
    if plain:
        hours = int(plain.group(1))
        minutes = int(plain.group(2))
        if hours > 23 or minutes > 59:
            return None
        return f"{hours:02d}:{minutes:02d}"

    ampm = _AMPM_TIME.match(trimmed)
    if not ampm:
        return None
    hours_raw = int(ampm.group(1))
    minutes = int(ampm.group(2))
    if hours_raw < 1 or hours_raw > 12 or minutes > 59:
        return None
    is_pm = ampm.group(3).lower() == "pm"
    hours = (hours_raw % 12) + (12 if is_pm else 0)
    return f"{hours:02d}:{minutes:02d}"


def parse_date_time(date: Optional[str], time_of_day: Optional[str]) -> Optional[datetime]:
    """
    Combine an ISO date ("2025-12-16") and a time of day into a local datetime

    Returns:
        Naive datetime (local wall clock) or None if either part is invalid
    """
    normalized = normalize_time_24h(time_of_day)
    if not date or not normalized:
        return None
    try:
        return datetime.fromisoformat(f"{date.strip()}T{normalized}:00")
    except ValueError:
        return None


def epoch_ms(dt: datetime) -> float:
    """Epoch milliseconds of a datetime (naive values are local time)"""
    return dt.timestamp() * 1000.0


def to_iso(dt: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision and a Z suffix"""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def iso_from_epoch_ms(value: float) -> Optional[str]:
    """Format epoch milliseconds as ISO-8601 UTC, None if out of range"""
    if not math.isfinite(value) or abs(value) > MAX_EPOCH_MS:
        return None
    try:
        return to_iso(datetime.fromtimestamp(value / 1000.0, tz=timezone.utc))
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso(text: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string (Z suffix allowed), None if unparsable"""
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    if trimmed.endswith(("Z", "z")):
        trimmed = trimmed[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(trimmed)
    except ValueError:
        return None


def parse_epoch_ms(text: Optional[str]) -> Optional[float]:
    """Epoch milliseconds of an ISO-8601 string, None if unparsable"""
    dt = parse_iso(text)
    if dt is None:
        return None
    try:
        return epoch_ms(dt)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_time_value(value: Any) -> Optional[str]:
    """
    Normalize a raw ping time field to ISO-8601 UTC

    Numbers and numeric strings are epoch milliseconds; other strings
    are parsed as ISO-8601.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return iso_from_epoch_ms(float(value))
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            numeric = float(trimmed)
        except ValueError:
            numeric = None
        if numeric is not None and math.isfinite(numeric):
            return iso_from_epoch_ms(numeric)
        dt = parse_iso(trimmed)
        if dt is None:
            return None
        try:
            return to_iso(dt)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _distance_words(seconds: float) -> str:
    minutes = seconds / 60.0
    if seconds < 30:
        return "less than a minute"
    if seconds < 90:
        return "1 minute"
    if minutes < 44.5:
        return f"{round(minutes)} minutes"
    if minutes < 89.5:
        return "about 1 hour"
    hours = minutes / 60.0
    if minutes < 24 * 60 - 0.5:
        return f"about {round(hours)} hours"
    if hours < 42:
        return "1 day"
    days = hours / 24.0
    if days < 30:
        return f"{round(days)} days"
    if days < 45:
        return "about 1 month"
    if days < 60:
        return "about 2 months"
    if days < 365:
        return f"{round(days / 30)} months"
    years = days / 365.0
    if years < 2:
        return "about 1 year"
    return f"about {math.floor(years)} years"


def humanize_since(time_text: Optional[str], now: Optional[datetime] = None) -> Optional[str]:
    """
    Relative label for a timestamp, e.g. "5 minutes ago" or "in about 2 hours"

    Returns:
        Label, or None if the timestamp cannot be parsed
    """
    dt = parse_iso(time_text)
    if dt is None:
        return None
    now = now or datetime.now(timezone.utc)
    try:
        if dt.tzinfo is None:
            dt = dt.astimezone()
        if now.tzinfo is None:
            now = now.astimezone()
        delta = (now - dt).total_seconds()
    except (OverflowError, OSError, ValueError):
        return None
    words = _distance_words(abs(delta))
    return f"{words} ago" if delta >= 0 else f"in {words}"
