"""
Kinematics Calculator

Great-circle distance, per-segment speed and cumulative path distance.
Pure functions over anything with `lat` / `lng` attributes.
"""

import math
from typing import Sequence

from gps_monitoring.models import RoutePoint
from gps_monitoring.timeutils import parse_epoch_ms


EARTH_RADIUS_KM = 6371.0

# Elapsed time floor: one millisecond, in hours
MIN_ELAPSED_HOURS = 1 / 3_600_000


def distance_km(a, b) -> float:
    """
    Haversine distance between two points

    Args:
        a: Point with lat/lng in degrees
        b: Point with lat/lng in degrees

    Returns:
        Distance in kilometres
    """
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def speed_kmh(prev: RoutePoint, curr: RoutePoint) -> float:
    """
    Average speed between two route points

    Elapsed time is floored to one millisecond so duplicate timestamps
    do not divide by zero. Unparsable timestamps give 0.
    """
    start_ms = parse_epoch_ms(prev.time)
    end_ms = parse_epoch_ms(curr.time)
    if start_ms is None or end_ms is None:
        return 0.0
    hours = max(MIN_ELAPSED_HOURS, (end_ms - start_ms) / 3_600_000)
    return distance_km(prev, curr) / hours


def speed_at(points: Sequence[RoutePoint], index: int) -> float:
    """Speed between the point before `index` and the point at `index`"""
    if len(points) < 2 or index <= 0 or index >= len(points):
        return 0.0
    return speed_kmh(points[index - 1], points[index])


def cumulative_distance_km(path: Sequence) -> float:
    """Sum of haversine distances over consecutive pairs"""
    if len(path) < 2:
        return 0.0
    return sum(distance_km(path[i - 1], path[i]) for i in range(1, len(path)))
