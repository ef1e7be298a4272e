"""
Battery Estimator

Parses raw battery readings and fills gaps between known samples by
carry-forward / carry-back and midpoint averaging. A missing reading is
"no data", never 0%.
"""

import math
from typing import Any, List, Optional, Sequence


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from -inf (2.5 -> 3)"""
    return int(math.floor(value + 0.5))


def parse_battery_percent(value: Any) -> Optional[int]:
    """
    Parse a raw battery reading

    Accepts numbers and strings like "45", "45%", " 45.6 % ".

    Returns:
        Integer percentage clamped to 0-100, or None if absent/unparsable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        trimmed = value.strip().replace("%", "").strip()
        if not trimmed:
            return None
        try:
            number = float(trimmed)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return min(100, max(0, round_half_up(number)))


def estimate_battery(readings: Sequence[Optional[int]]) -> List[Optional[int]]:
    """
    Fill missing battery readings

    Per index: the raw value if present; else the rounded mean of the
    nearest known values before and after; else whichever one exists;
    else None.

    Args:
        readings: Per-point raw readings (None where absent)

    Returns:
        Same-length list of estimates
    """
    n = len(readings)

    forward: List[Optional[int]] = [None] * n
    last: Optional[int] = None
    for i, value in enumerate(readings):
        if value is not None:
            last = value
        forward[i] = last

    backward: List[Optional[int]] = [None] * n
    nxt: Optional[int] = None
    for i in range(n - 1, -1, -1):
        if readings[i] is not None:
            nxt = readings[i]
        backward[i] = nxt

    estimates: List[Optional[int]] = []
    for i, value in enumerate(readings):
        if value is not None:
            estimates.append(value)
        elif forward[i] is not None and backward[i] is not None:
            estimates.append(round_half_up((forward[i] + backward[i]) / 2))
        elif forward[i] is not None:
            estimates.append(forward[i])
        else:
            estimates.append(backward[i])
    return estimates


def battery_tone(percent: Optional[int], good: int = 65, warn: int = 35) -> str:
    """Display tone for a battery level: good / warn / low / unknown"""
    if percent is None:
        return "unknown"
    if percent >= good:
        return "good"
    if percent >= warn:
        return "warn"
    return "low"
