"""
Pydantic Models Package

All data models for GPS monitoring replay.
Import from here for convenience.
"""

# Route models
from .route import (
    GeoPoint,
    RoutePoint,
    SummaryRow,
)

# Filter models
from .filters import (
    ReplayFilters,
    FILTERS_REQUIRED_MESSAGE,
)

# External provider models
from .provider import (
    ProviderStatus,
    GeocodeResponse,
    DirectionsResponse,
)

# Display frame
from .frame import (
    DisplayFrame,
    AgentStatus,
    BatteryTone,
)


__all__ = [
    # Route
    "GeoPoint",
    "RoutePoint",
    "SummaryRow",

    # Filters
    "ReplayFilters",
    "FILTERS_REQUIRED_MESSAGE",

    # Providers
    "ProviderStatus",
    "GeocodeResponse",
    "DirectionsResponse",

    # Frame
    "DisplayFrame",
    "AgentStatus",
    "BatteryTone",
]
