"""
External Service Wrappers

Reverse geocoding and route snapping behind small provider interfaces.
"""

from .geocode_service import (
    CITY_TYPE_PRIORITY,
    pick_city_label,
    GeocodeProvider,
    GoogleGeocodeProvider,
    GeocodeResolver,
)
from .directions_service import (
    DEFAULT_MAX_WAYPOINTS,
    build_waypoints,
    decode_polyline,
    DirectionsProvider,
    GoogleDirectionsProvider,
    RouteSnapper,
)


__all__ = [
    # Geocoding
    "CITY_TYPE_PRIORITY",
    "pick_city_label",
    "GeocodeProvider",
    "GoogleGeocodeProvider",
    "GeocodeResolver",

    # Directions
    "DEFAULT_MAX_WAYPOINTS",
    "build_waypoints",
    "decode_polyline",
    "DirectionsProvider",
    "GoogleDirectionsProvider",
    "RouteSnapper",
]
