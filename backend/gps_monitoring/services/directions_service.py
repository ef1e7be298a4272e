"""
Directions Service (Route Snapping)

Fetches a road-following overview path for a raw GPS path so the replay
polyline follows the street network instead of straight ping-to-ping
segments. Failure is never fatal: the replay falls back to the raw path.
"""

import aiohttp
import asyncio
import math
import os
from typing import List, Optional, Protocol, Sequence, Tuple

from gps_monitoring.models import DirectionsResponse, GeoPoint, ProviderStatus


DEFAULT_MAX_WAYPOINTS = 20


def build_waypoints(path: Sequence[GeoPoint], max_waypoints: int = DEFAULT_MAX_WAYPOINTS) -> List[GeoPoint]:
    """
    Interior points of a path, downsampled to the provider limit

    Origin and destination are excluded. When the interior holds more
    than `max_waypoints` points, every ceil(count / max)-th point is
    kept, starting with the first.
    """
    interior = list(path[1:-1])
    if max_waypoints <= 0:
        return []
    if len(interior) <= max_waypoints:
        return interior
    step = math.ceil(len(interior) / max_waypoints)
    return [point for idx, point in enumerate(interior) if idx % step == 0]


def decode_polyline(encoded: str, precision: int = 5) -> List[GeoPoint]:
    """
    Decode an encoded polyline into coordinates

    Args:
        encoded: Encoded polyline string
        precision: Decimal precision (5 for Google, 6 for polyline6)

    Raises:
        ValueError: If the string is truncated
    """
    coordinates: List[GeoPoint] = []
    index = 0
    lat = 0
    lng = 0
    factor = 10 ** -precision

    while index < len(encoded):
        lat_change, index = _decode_value(encoded, index)
        lng_change, index = _decode_value(encoded, index)
        lat += lat_change
        lng += lng_change
        coordinates.append(GeoPoint(lat=round(lat * factor, precision), lng=round(lng * factor, precision)))

    return coordinates


def _decode_value(encoded: str, index: int) -> Tuple[int, int]:
    result = 0
    shift = 0

    while True:
        if index >= len(encoded):
            raise ValueError("Invalid polyline: buffer exhausted.")
        b = ord(encoded[index]) - 63
        index += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break

    delta = ~(result >> 1) if (result & 1) else (result >> 1)
    return delta, index


class DirectionsProvider(Protocol):
    """Driving directions backend"""

    async def route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        waypoints: Sequence[GeoPoint],
    ) -> DirectionsResponse:
        ...


class GoogleDirectionsProvider:
    """
    Google Directions API client

    Waypoints are sent as pass-through ("via:") points in the given
    order; the provider is never asked to reorder them.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        travel_mode: str = "driving",
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("GOOGLE_MAPS_API_KEY", "")
        self.base_url = "https://maps.googleapis.com/maps/api/directions/json"
        self.travel_mode = travel_mode
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def initialize(self):
        """Initialize the HTTP session"""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds, connect=5)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self):
        """Close the HTTP session"""
        if self._session and not self._session.closed:
            await self._session.close()

    async def route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        waypoints: Sequence[GeoPoint],
    ) -> DirectionsResponse:
        """Request the overview path from origin to destination via waypoints"""
        if not self.is_configured:
            return DirectionsResponse(status="NOT_CONFIGURED")

        await self.initialize()
        params = {
            'origin': f"{origin.lat},{origin.lng}",
            'destination': f"{destination.lat},{destination.lng}",
            'mode': self.travel_mode,
            'key': self.api_key,
        }
        if waypoints:
            params['waypoints'] = "|".join(f"via:{p.lat},{p.lng}" for p in waypoints)

        try:
            async with self._session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    print(f"[Directions] HTTP {response.status}")
                    return DirectionsResponse(status=f"HTTP_{response.status}")
                data = await response.json()
        except asyncio.TimeoutError:
            print("[Directions] Request timeout")
            return DirectionsResponse(status="TIMEOUT")
        except aiohttp.ClientError as e:
            print(f"[Directions] Network error: {e}")
            return DirectionsResponse(status="NETWORK_ERROR")

        if not isinstance(data, dict):
            return DirectionsResponse(status="INVALID_RESPONSE")

        status = str(data.get('status', 'UNKNOWN_ERROR'))
        if status != "OK":
            print(f"[Directions] Status {status}")
            return DirectionsResponse(status=status)

        try:
            encoded = data['routes'][0]['overview_polyline']['points']
            path = decode_polyline(encoded)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            print(f"[Directions] Unexpected response shape: {e}")
            return DirectionsResponse(status="INVALID_RESPONSE")

        return DirectionsResponse(status=status, path=path)


class RouteSnapper:
    """
    Road-snapped overlay for a raw replay path

    Usage:
        snapper = RouteSnapper(GoogleDirectionsProvider())
        snapped = await snapper.snap(raw_path)   # None on any failure
    """

    def __init__(self, provider: DirectionsProvider, max_waypoints: int = DEFAULT_MAX_WAYPOINTS):
        self.provider = provider
        self.max_waypoints = max_waypoints
        self.last_error: Optional[str] = None
        self._status = ProviderStatus(
            is_configured=bool(getattr(provider, 'is_configured', True))
        )

    @property
    def status(self) -> ProviderStatus:
        return self._status

    async def snap(self, path: Sequence[GeoPoint]) -> Optional[List[GeoPoint]]:
        """
        Snap a raw path to roads

        Returns:
            Overview path, or None for paths under 2 points or on failure
        """
        if len(path) < 2:
            return None

        waypoints = build_waypoints(path, self.max_waypoints)
        self._status.record_request()
        try:
            response = await self.provider.route(path[0], path[-1], waypoints)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            print(f"[Directions] Provider error: {e}")
            self.last_error = "ERROR"
            self._status.record_error(self.last_error)
            return None

        if not response.ok:
            self.last_error = response.status
            self._status.record_error(response.status)
            return None

        self.last_error = None
        self._status.record_success()
        return list(response.path)
