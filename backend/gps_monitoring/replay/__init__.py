"""
Replay Engine Package

Normalization, kinematics, battery estimation, waypoint summaries,
interpolation and the playback clock for GPS track replay.
"""

# Pure derivations
from .normalizer import (
    TIME_KEYS,
    LABEL_SEPARATOR,
    normalize_records,
    resolve_record_time,
    build_point_label,
)
from .kinematics import (
    EARTH_RADIUS_KM,
    distance_km,
    speed_kmh,
    speed_at,
    cumulative_distance_km,
)
from .battery import (
    parse_battery_percent,
    estimate_battery,
    battery_tone,
)
from .waypoints import (
    WaypointSummary,
    summarize_waypoints,
    time_key,
)
from .interpolator import (
    clamp_playhead,
    interpolate_position,
    display_path,
    current_index,
)

# Playback
from .clock import (
    PlaybackState,
    PlaybackClock,
)
from .session import (
    ReplaySession,
    agent_status_for,
)

# Demo data
from .sample_route import (
    ANCHOR_ROUTE,
    expand_route_every_minute,
    sample_records,
)


__all__ = [
    # Normalizer
    "TIME_KEYS",
    "LABEL_SEPARATOR",
    "normalize_records",
    "resolve_record_time",
    "build_point_label",

    # Kinematics
    "EARTH_RADIUS_KM",
    "distance_km",
    "speed_kmh",
    "speed_at",
    "cumulative_distance_km",

    # Battery
    "parse_battery_percent",
    "estimate_battery",
    "battery_tone",

    # Waypoints
    "WaypointSummary",
    "summarize_waypoints",
    "time_key",

    # Interpolator
    "clamp_playhead",
    "interpolate_position",
    "display_path",
    "current_index",

    # Playback
    "PlaybackState",
    "PlaybackClock",
    "ReplaySession",
    "agent_status_for",

    # Demo data
    "ANCHOR_ROUTE",
    "expand_route_every_minute",
    "sample_records",
]
