"""
Record Normalizer

Turns heterogeneous raw ping records from the data-access layer into an
ordered list of RoutePoints.

Rules:
- A ping without a parsable latitude AND longitude is dropped
- Time comes from the first parsable field in TIME_KEYS, otherwise a
  fallback spread evenly across the declared window
- Input order is preserved (the source list is already sorted)
"""

import math
import time
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from gps_monitoring.models import RoutePoint
from gps_monitoring.timeutils import epoch_ms, iso_from_epoch_ms, normalize_time_value
from .battery import parse_battery_percent


TIME_KEYS = (
    'time',
    'gpsTime',
    'gpsDateTime',
    'createdAt',
    'createdDate',
    'createdDateTime',
    'timestamp',
)

LABEL_SEPARATOR = " • "
DEFAULT_STEP_MS = 60_000


def to_number(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            number = float(trimmed)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _clean_invoice(value: Any) -> Optional[str]:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def resolve_record_time(record: Mapping[str, Any], fallback: str) -> str:
    """First candidate time field that parses, else the fallback"""
    for key in TIME_KEYS:
        normalized = normalize_time_value(record.get(key))
        if normalized:
            return normalized
    return fallback


def build_point_label(record: Mapping[str, Any]) -> Optional[str]:
    """
    Build the marker label for a ping

    Example: "Colombo Traders • Invoice INV-7 • Check-in"
    """
    parts: List[str] = []
    outlet = record.get('outletName')
    if outlet:
        parts.append(str(outlet))
    invoice = _clean_invoice(record.get('invoiceNumber'))
    if invoice:
        parts.append(f"Invoice {invoice}")
    if record.get('isCheckIn') is True:
        parts.append("Check-in")
    if record.get('isCheckOut') is True:
        parts.append("Check-out")
    return LABEL_SEPARATOR.join(parts) if parts else None


def _fallback_schedule(
    count: int,
    window_start: Optional[datetime],
    window_end: Optional[datetime],
    now_ms: Optional[float],
) -> tuple:
    """(first_ms, step_ms) used to synthesize missing timestamps"""
    start_ms = epoch_ms(window_start) if window_start is not None else None
    end_ms = epoch_ms(window_end) if window_end is not None else None

    if start_ms is not None and end_ms is not None and end_ms > start_ms and count > 1:
        step_ms = (end_ms - start_ms) / (count - 1)
    else:
        step_ms = DEFAULT_STEP_MS

    if start_ms is not None:
        return start_ms, step_ms
    return (now_ms if now_ms is not None else time.time() * 1000.0), step_ms


def normalize_records(
    records: Sequence[Mapping[str, Any]],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    now_ms: Optional[float] = None,
) -> List[RoutePoint]:
    """
    Normalize raw pings into RoutePoints

    Args:
        records: Raw ping dicts as supplied by the data-access layer
        window_start: Declared filter window start (fallback timestamps)
        window_end: Declared filter window end
        now_ms: "Now" in epoch ms when the window is absent (default: wall clock)

    Returns:
        Ordered RoutePoints; empty (not an error) when nothing is usable
    """
    if not records:
        return []

    first_ms, step_ms = _fallback_schedule(len(records), window_start, window_end, now_ms)

    points: List[RoutePoint] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            continue
        lat = to_number(_first_present(record, 'latitude', 'lat'))
        lng = to_number(_first_present(record, 'longitude', 'lng'))
        if lat is None or lng is None:
            continue

        fallback = iso_from_epoch_ms(first_ms + index * step_ms) or iso_from_epoch_ms(first_ms)
        outlet = record.get('outletName')

        points.append(RoutePoint(
            lat=lat,
            lng=lng,
            time=resolve_record_time(record, fallback),
            label=build_point_label(record),
            battery_percent=parse_battery_percent(record.get('batteryPercentage')),
            is_check_in=_flag(record.get('isCheckIn')),
            is_check_out=_flag(record.get('isCheckOut')),
            outlet_name=str(outlet) if outlet is not None else None,
            invoice_id=_invoice_id(record.get('invoiceNumber')),
        ))

    return points


def _invoice_id(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value) if value.is_integer() else str(value)
    return None

