"""
Sample Route

A Kalutara -> Colombo coastal drive, densified to one ping per minute,
used by the demo endpoint and tests when no data-access layer is wired.
"""

from typing import Any, Dict, List, Sequence

from gps_monitoring.timeutils import iso_from_epoch_ms, parse_epoch_ms


def expand_route_every_minute(
    anchors: Sequence[Dict[str, Any]],
    step_seconds: int = 60,
) -> List[Dict[str, Any]]:
    """
    Expand sparse anchor points into per-step points

    - Keeps anchors exact
    - Linearly interpolates lat/lng between anchors (6 decimals)
    - Generates a point every `step_seconds`

    Anchor pairs with unparsable, equal or backwards times are not
    densified.

    Args:
        anchors: Dicts with lat, lng, time and optional label/batteryPercentage
        step_seconds: Spacing of generated points

    Returns:
        Densified list of point dicts
    """
    if not anchors:
        return []

    out: List[Dict[str, Any]] = []

    def push_anchor(point: Dict[str, Any]):
        if not out or out[-1]["time"] != point["time"]:
            out.append(point)

    for a, b in zip(anchors, anchors[1:]):
        t_a = parse_epoch_ms(a["time"])
        t_b = parse_epoch_ms(b["time"])

        push_anchor(a)
        if t_a is None or t_b is None or t_b <= t_a:
            continue

        total_seconds = int((t_b - t_a) // 1000)
        steps = total_seconds // step_seconds
        for s in range(1, steps + 1):
            offset = s * step_seconds
            if offset >= total_seconds:
                # Lands on the next anchor, which is pushed on its own
                continue
            ratio = offset / total_seconds
            out.append({
                "lat": round(a["lat"] + (b["lat"] - a["lat"]) * ratio, 6),
                "lng": round(a["lng"] + (b["lng"] - a["lng"]) * ratio, 6),
                "time": iso_from_epoch_ms(t_a + offset * 1000),
                "label": a.get("label"),
                "batteryPercentage": a.get("batteryPercentage") or b.get("batteryPercentage"),
                "interpolated": True,
            })

    push_anchor(anchors[-1])
    return out


ANCHOR_ROUTE: List[Dict[str, Any]] = [
    {"lat": 6.5854, "lng": 79.9607, "time": "2025-12-16T03:30:00Z", "label": "Kalutara", "batteryPercentage": "99%"},
    {"lat": 6.6038, "lng": 79.9502, "time": "2025-12-16T03:40:00Z", "label": "Payagala", "batteryPercentage": "99%"},
    {"lat": 6.6289, "lng": 79.9349, "time": "2025-12-16T03:50:00Z", "label": "Maggona", "batteryPercentage": "98%"},
    {"lat": 6.6509, "lng": 79.9256, "time": "2025-12-16T04:00:00Z", "label": "Wadduwa", "batteryPercentage": "98%"},
    {"lat": 6.7202, "lng": 79.9024, "time": "2025-12-16T04:15:00Z", "label": "Panadura", "batteryPercentage": "98%"},
    {"lat": 6.7426, "lng": 79.8961, "time": "2025-12-16T04:25:00Z", "label": "Egodauyana", "batteryPercentage": "96%"},
    {"lat": 6.767, "lng": 79.8901, "time": "2025-12-16T04:35:00Z", "label": "Moratuwa", "batteryPercentage": "96%"},
    {"lat": 6.7894, "lng": 79.8871, "time": "2025-12-16T04:45:00Z", "label": "Katubedda", "batteryPercentage": "95%"},
    {"lat": 6.8098, "lng": 79.8789, "time": "2025-12-16T04:55:00Z", "label": "Ratmalana", "batteryPercentage": "95%"},
    {"lat": 6.8295, "lng": 79.8659, "time": "2025-12-16T05:05:00Z", "label": "Dehiwala", "batteryPercentage": "94%"},
    {"lat": 6.8526, "lng": 79.8623, "time": "2025-12-16T05:15:00Z", "label": "Wellawatte", "batteryPercentage": "93%"},
    {"lat": 6.8741, "lng": 79.8612, "time": "2025-12-16T05:20:00Z", "label": "Bambalapitiya", "batteryPercentage": "92%"},
    {"lat": 6.9, "lng": 79.8588, "time": "2025-12-16T05:25:00Z", "label": "Kollupitiya", "batteryPercentage": "90%"},
    {"lat": 6.9271, "lng": 79.8612, "time": "2025-12-16T05:30:00Z", "label": "Colombo", "batteryPercentage": "88%"},
]


def sample_records(step_seconds: int = 60) -> List[Dict[str, Any]]:
    """
    The sample route as raw ping records

    Anchors become outlet visits; generated points carry position,
    time and battery only.
    """
    records: List[Dict[str, Any]] = []
    for point in expand_route_every_minute(ANCHOR_ROUTE, step_seconds):
        record = {
            "latitude": point["lat"],
            "longitude": point["lng"],
            "gpsTime": point["time"],
            "batteryPercentage": point.get("batteryPercentage"),
        }
        if not point.get("interpolated"):
            record["outletName"] = point.get("label")
        records.append(record)
    return records
