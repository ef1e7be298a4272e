"""
Position Interpolator

Maps the continuous playhead (in raw point-index units) onto a path.
When the path is a road-snapped overlay with a different vertex count,
the playhead is reindexed proportionally: progress through the raw
points equals progress through the overlay's vertices. This assumes
both paths are sampled roughly evenly and is not a time-exact sync.
"""

import math
from typing import List, Optional, Sequence, Tuple

from gps_monitoring.models import GeoPoint


RATIO_EPSILON = 1e-9


def clamp_playhead(playhead: float, point_count: int) -> float:
    """Clamp to [0, N-1] (0 for empty or single-point routes)"""
    upper = max(0, point_count - 1)
    if not math.isfinite(playhead):
        return 0.0
    return min(float(upper), max(0.0, playhead))


def proportional_index(playhead: float, point_count: int, path_length: int) -> float:
    """Playhead reindexed onto a path of `path_length` vertices"""
    p = clamp_playhead(playhead, point_count)
    return p / max(1, point_count - 1) * max(0, path_length - 1)


def _segment(playhead: float, point_count: int, path_length: int) -> Tuple[int, int, float]:
    i = proportional_index(playhead, point_count, path_length)
    base = min(int(math.floor(i)), path_length - 1)
    ratio = i - base
    nxt = min(base + 1, path_length - 1)
    return base, nxt, ratio


def interpolate_position(
    playhead: float,
    point_count: int,
    path: Sequence[GeoPoint],
) -> Optional[GeoPoint]:
    """
    Interpolated coordinate at the playhead

    Args:
        playhead: Replay cursor in raw point-index units
        point_count: Number of raw route points (N)
        path: Raw or snapped path (M vertices)

    Returns:
        Linear interpolation of lat and lng between the two bracketing
        vertices; exact vertex at sample points; None for an empty path
    """
    if not path:
        return None
    base, nxt, ratio = _segment(playhead, point_count, len(path))
    start = path[base]
    if base == nxt or ratio < RATIO_EPSILON:
        return start
    end = path[nxt]
    return GeoPoint(
        lat=start.lat + (end.lat - start.lat) * ratio,
        lng=start.lng + (end.lng - start.lng) * ratio,
    )


def display_path(
    playhead: float,
    point_count: int,
    path: Sequence[GeoPoint],
) -> List[GeoPoint]:
    """
    Prefix of the path travelled so far

    Vertices up to the bracketing base vertex, plus the interpolated
    current position when it falls between vertices.
    """
    if not path:
        return []
    base, nxt, ratio = _segment(playhead, point_count, len(path))
    prefix = list(path[:base + 1])
    if base != nxt and ratio >= RATIO_EPSILON:
        current = interpolate_position(playhead, point_count, path)
        if current is not None:
            prefix.append(current)
    return prefix


def current_index(playhead: float, point_count: int) -> int:
    """Raw route point index at or just behind the playhead"""
    if point_count <= 0:
        return 0
    return int(math.floor(clamp_playhead(playhead, point_count)))
