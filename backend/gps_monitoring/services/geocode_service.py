"""
Reverse Geocoding Service

Resolves the replay marker position to a human place label.

Features:
- Google Geocoding API integration (aiohttp)
- Session address cache keyed by rounded coordinate (never evicted)
- Global request cooldown shared by all coordinates; misses inside the
  window are dropped, not queued
- Failures are never cached and never surfaced beyond the status model
- Responses for a superseded route are discarded
"""

import aiohttp
import asyncio
import os
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from gps_monitoring.models import GeocodeResponse, ProviderStatus


# Most specific locality-like component first
CITY_TYPE_PRIORITY = [
    'locality',
    'postal_town',
    'administrative_area_level_2',
    'administrative_area_level_1',
    'sublocality_level_1',
    'sublocality',
    'neighborhood',
]


def pick_city_label(results: List[Dict[str, Any]]) -> Optional[str]:
    """
    Pick a place label from geocoder results

    Walks the results in order; within a result the component with the
    highest-priority locality-like type wins. Falls back to the first
    result's formatted address.
    """
    for result in results or []:
        components = result.get('address_components') or []
        for city_type in CITY_TYPE_PRIORITY:
            for component in components:
                name = component.get('long_name')
                if name and city_type in (component.get('types') or []):
                    return str(name)
    if results:
        formatted = results[0].get('formatted_address')
        return str(formatted) if formatted else None
    return None


class GeocodeProvider(Protocol):
    """Reverse geocoding backend"""

    async def reverse_geocode(self, lat: float, lng: float) -> GeocodeResponse:
        ...


class GoogleGeocodeProvider:
    """
    Google Geocoding API client

    Usage:
        provider = GoogleGeocodeProvider(api_key="...")
        await provider.initialize()
        response = await provider.reverse_geocode(6.9271, 79.8612)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        language: str = "en",
        timeout_seconds: float = 10.0,
    ):
        """
        Initialize the provider

        Args:
            api_key: Google Maps API key (defaults to GOOGLE_MAPS_API_KEY env var)
            language: Result language
            timeout_seconds: Total request timeout
        """
        self.api_key = api_key if api_key is not None else os.getenv("GOOGLE_MAPS_API_KEY", "")
        self.base_url = "https://maps.googleapis.com/maps/api/geocode/json"
        self.language = language
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

    async def reverse_geocode(self, lat: float, lng: float) -> GeocodeResponse:
        """Reverse geocode one coordinate"""
        if not self.is_configured:
            return GeocodeResponse(status="NOT_CONFIGURED")

        await self.initialize()
        params = {
            'latlng': f"{lat:.6f},{lng:.6f}",
            'language': self.language,
            'key': self.api_key,
        }

        try:
            async with self._session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    print(f"[Geocode] HTTP {response.status}")
                    return GeocodeResponse(status=f"HTTP_{response.status}")
                data = await response.json()
        except asyncio.TimeoutError:
            print("[Geocode] Request timeout")
            return GeocodeResponse(status="TIMEOUT")
        except aiohttp.ClientError as e:
            print(f"[Geocode] Network error: {e}")
            return GeocodeResponse(status="NETWORK_ERROR")

        if not isinstance(data, dict):
            return GeocodeResponse(status="INVALID_RESPONSE")
        results = data.get('results')
        return GeocodeResponse(
            status=str(data.get('status', 'UNKNOWN_ERROR')),
            results=results if isinstance(results, list) else [],
        )


class GeocodeResolver:
    """
    Rate-limited, cached place-label resolution for the replay marker

    `resolve()` is synchronous from the caller's point of view: it
    returns a cached label immediately or None while a request is
    pending (or was dropped by the cooldown). Successful lookups update
    `label` in the background.

    Usage:
        resolver = GeocodeResolver(GoogleGeocodeProvider())
        label = resolver.resolve(6.9271, 79.8612) or resolver.label
    """

    def __init__(
        self,
        provider: GeocodeProvider,
        cooldown_seconds: float = 4.0,
        precision: int = 3,
        time_source: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the resolver

        Args:
            provider: Geocoding backend
            cooldown_seconds: Minimum spacing between outbound requests
            precision: Decimal places of the cache key
            time_source: Monotonic clock in seconds
        """
        self.provider = provider
        self.cooldown_seconds = cooldown_seconds
        self.precision = precision
        self._time_source = time_source

        self._cache: Dict[str, str] = {}
        self._last_request_at: Optional[float] = None
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0

        self.label: Optional[str] = None
        self._status = ProviderStatus(
            is_configured=bool(getattr(provider, 'is_configured', True))
        )

    @property
    def status(self) -> ProviderStatus:
        return self._status

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def cache_key(self, lat: float, lng: float) -> str:
        """Cache key: coordinate rounded to `precision` decimals"""
        return f"{lat:.{self.precision}f},{lng:.{self.precision}f}"

    def cached(self, lat: float, lng: float) -> Optional[str]:
        return self._cache.get(self.cache_key(lat, lng))

    def resolve(self, lat: float, lng: float) -> Optional[str]:
        """
        Resolve a coordinate to a place label

        Must be called from within the running event loop on a cache
        miss, since the lookup is dispatched as a task.

        Returns:
            Cached label, or None if a request was dispatched or dropped
        """
        key = self.cache_key(lat, lng)
        cached = self._cache.get(key)
        if cached is not None:
            self._status.cache_hit_count += 1
            self.label = cached
            return cached

        self._status.cache_miss_count += 1
        now = self._time_source()
        if self._last_request_at is not None and now - self._last_request_at < self.cooldown_seconds:
            self._status.dropped_count += 1
            return None

        self._last_request_at = now
        task = asyncio.get_running_loop().create_task(
            self._fetch(key, lat, lng, self._generation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return None

    async def _fetch(self, key: str, lat: float, lng: float, generation: int):
        self._status.record_request()
        try:
            response = await self.provider.reverse_geocode(lat, lng)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            print(f"[Geocode] Provider error for {key}: {e}")
            self._status.record_error("ERROR")
            return

        if generation != self._generation:
            return

        if not response.ok:
            self._status.record_error(response.status)
            return

        label = pick_city_label(response.results)
        if not label:
            self._status.record_error("NO_LABEL")
            return

        self._cache[key] = label
        self.label = label
        self._status.record_success()

    def cancel_pending(self):
        """Discard every in-flight lookup and forget the surfaced label"""
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.label = None

    async def wait_pending(self):
        """Wait for in-flight lookups to settle"""
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        hits = self._status.cache_hit_count
        misses = self._status.cache_miss_count
        total = hits + misses
        return {
            "entries": len(self._cache),
            "hits": hits,
            "misses": misses,
            "dropped": self._status.dropped_count,
            "hit_rate": (hits / total * 100) if total > 0 else 0,
            "cooldown_seconds": self.cooldown_seconds,
        }
