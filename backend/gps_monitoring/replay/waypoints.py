"""
Waypoint Summarizer

Reduces a route to one "last seen" row per outlet and one per invoice.
For each key the row with the greatest time key wins; ties go to the
later point.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from gps_monitoring.models import RoutePoint, SummaryRow
from gps_monitoring.timeutils import parse_epoch_ms
from .battery import estimate_battery


@dataclass
class WaypointSummary:
    """Outlet and invoice rows for the visit tables"""
    outlets: List[SummaryRow] = field(default_factory=list)
    invoices: List[SummaryRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'outlets': [row.to_dict() for row in self.outlets],
            'invoices': [row.to_dict() for row in self.invoices],
        }


def time_key(point: RoutePoint, index: int) -> float:
    """Epoch ms of the point, or its index when the time is unparsable"""
    parsed = parse_epoch_ms(point.time)
    return parsed if parsed is not None else float(index)


def outlet_key(point: RoutePoint) -> Optional[str]:
    if point.outlet_name is None:
        return None
    return point.outlet_name.strip() or None


def invoice_key(point: RoutePoint) -> Optional[str]:
    if point.invoice_id is None:
        return None
    return str(point.invoice_id).strip() or None


def _reduce_latest(
    points: Sequence[RoutePoint],
    battery: Sequence[Optional[int]],
    key_fn: Callable[[RoutePoint], Optional[str]],
    title_fn: Callable[[str], str],
) -> List[SummaryRow]:
    latest: Dict[str, SummaryRow] = {}
    for index, point in enumerate(points):
        key = key_fn(point)
        if key is None:
            continue
        tk = time_key(point, index)
        current = latest.get(key)
        if current is not None and tk < current.time_key:
            continue
        latest[key] = SummaryRow(
            key=key,
            title=title_fn(key),
            lat=point.lat,
            lng=point.lng,
            battery_percent=battery[index] if index < len(battery) else None,
            time=point.time,
            time_key=tk,
        )
    return list(latest.values())


def summarize_waypoints(
    points: Sequence[RoutePoint],
    battery: Optional[Sequence[Optional[int]]] = None,
) -> WaypointSummary:
    """
    Build the outlet and invoice summaries

    Args:
        points: Normalized route
        battery: Gap-filled battery estimates (computed if omitted)

    Returns:
        WaypointSummary with rows in first-seen key order
    """
    if battery is None:
        battery = estimate_battery([p.battery_percent for p in points])

    return WaypointSummary(
        outlets=_reduce_latest(points, battery, outlet_key, lambda key: key),
        invoices=_reduce_latest(points, battery, invoice_key, lambda key: f"Invoice {key}"),
    )
