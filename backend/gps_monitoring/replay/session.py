"""
Replay Session

Ties the replay engine together for one monitoring view: holds the
normalized route for the current filter selection, its playback clock,
the road-snapped overlay and the place-label resolver, and derives the
single display frame handed to the map renderer.

Loading a new route supersedes everything belonging to the previous
one. Pending ticks, geocode lookups and snap requests are cancelled, and
late responses are discarded by generation.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from gps_monitoring.models import (
    DisplayFrame,
    FILTERS_REQUIRED_MESSAGE,
    GeoPoint,
    ReplayFilters,
    RoutePoint,
)
from gps_monitoring.timeutils import humanize_since
from .battery import battery_tone, estimate_battery
from .clock import DEFAULT_BASE_STEP_MS, DEFAULT_SPEED_OPTIONS, DEFAULT_TICK_INTERVAL, PlaybackClock
from .interpolator import current_index, display_path, interpolate_position
from .kinematics import cumulative_distance_km, speed_at
from .normalizer import normalize_records
from .waypoints import WaypointSummary, summarize_waypoints


DEFAULT_CENTER = GeoPoint(lat=6.9271, lng=79.8612)
DEFAULT_LOCATION_LABEL = "Current location"
NO_PING_LABEL = "—"

MESSAGE_APPLY_FILTERS = "Apply filters to load GPS data."
MESSAGE_NO_DATA = "No GPS data for the selected filters."
MESSAGE_LIVE = "Live GPS signals and device trails."


def agent_status_for(point: Optional[RoutePoint]) -> str:
    """online at a check-in, offline at a check-out, idle otherwise"""
    if point is None:
        return "idle"
    if point.is_check_out:
        return "offline"
    if point.is_check_in:
        return "online"
    return "idle"


class ReplaySession:
    """
    One agent's route replay

    Usage:
        session = ReplaySession(geocoder=resolver, snapper=snapper)
        session.load(records, filters)
        session.play()
        frame = session.frame()
    """

    def __init__(
        self,
        geocoder=None,
        snapper=None,
        base_step_ms: float = DEFAULT_BASE_STEP_MS,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        speed_options: Sequence[float] = DEFAULT_SPEED_OPTIONS,
        default_speed: float = 1.0,
        default_center: GeoPoint = DEFAULT_CENTER,
        battery_good: int = 65,
        battery_warn: int = 35,
        time_source: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime]] = None,
        autoschedule: bool = True,
    ):
        """
        Initialize replay session

        Args:
            geocoder: GeocodeResolver for the location label (optional)
            snapper: RouteSnapper for the road-following overlay (optional)
            base_step_ms: Wall-clock milliseconds per point at 1x
            tick_interval: Seconds between playback ticks
            speed_options: Selectable speed multipliers
            default_speed: Speed of the first loaded route
            default_center: Map center when there is no route
            battery_good: Battery tone "good" threshold
            battery_warn: Battery tone "warn" threshold
            time_source: Monotonic clock in seconds (playback)
            now: Wall clock for the last-ping label
            autoschedule: Let the clock schedule its own ticks
        """
        self.geocoder = geocoder
        self.snapper = snapper
        self.base_step_ms = base_step_ms
        self.tick_interval = tick_interval
        self.speed_options = tuple(speed_options)
        self.default_center = default_center
        self.battery_good = battery_good
        self.battery_warn = battery_warn
        self._time_source = time_source
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._autoschedule = autoschedule

        self.filters: Optional[ReplayFilters] = None
        self.points: List[RoutePoint] = []
        self.battery: List[Optional[int]] = []
        self._summary = WaypointSummary()
        self.snapped_path: Optional[List[GeoPoint]] = None
        self.directions_error: Optional[str] = None
        self.loaded = False

        self.clock = self._new_clock(0, default_speed)
        self._snap_task: Optional[asyncio.Task] = None
        self._generation = 0

    @classmethod
    def from_config(cls, cfg, geocoder=None, snapper=None, **kwargs) -> "ReplaySession":
        """Build a session from the replay/map/battery config sections"""
        replay = cfg.get_replay_config()
        center = cfg.section("map").get("defaultCenter") or {}
        battery = cfg.section("battery")
        options = dict(
            base_step_ms=float(replay.get("baseStepMs", DEFAULT_BASE_STEP_MS)),
            tick_interval=float(replay.get("tickIntervalMs", DEFAULT_TICK_INTERVAL * 1000)) / 1000.0,
            speed_options=cfg.get_speed_options(),
            default_speed=float(replay.get("defaultSpeed", 1)),
            default_center=GeoPoint(
                lat=float(center.get("lat", DEFAULT_CENTER.lat)),
                lng=float(center.get("lng", DEFAULT_CENTER.lng)),
            ),
            battery_good=int(battery.get("goodThreshold", 65)),
            battery_warn=int(battery.get("warnThreshold", 35)),
        )
        options.update(kwargs)
        return cls(geocoder=geocoder, snapper=snapper, **options)

    # ------------------------------------------------------------------
    # Route lifecycle
    # ------------------------------------------------------------------

    @property
    def has_route(self) -> bool:
        return bool(self.points)

    @property
    def raw_path(self) -> List[GeoPoint]:
        return [p.coordinate for p in self.points]

    @property
    def path(self) -> List[GeoPoint]:
        """Snapped overlay when available, raw path otherwise"""
        return self.snapped_path or self.raw_path

    def _new_clock(self, point_count: int, speed: float) -> PlaybackClock:
        return PlaybackClock(
            point_count=point_count,
            base_step_ms=self.base_step_ms,
            speed=speed,
            speed_options=self.speed_options,
            tick_interval=self.tick_interval,
            time_source=self._time_source,
            autoschedule=self._autoschedule,
        )

    def _cancel_route(self):
        self._generation += 1
        self.clock.close()
        if self._snap_task is not None and not self._snap_task.done():
            self._snap_task.cancel()
        self._snap_task = None
        if self.geocoder is not None:
            self.geocoder.cancel_pending()

    def load(
        self,
        records: Sequence[Mapping[str, Any]],
        filters: Optional[ReplayFilters] = None,
        now_ms: Optional[float] = None,
    ) -> int:
        """
        Replace the current route

        Args:
            records: Raw pings for the filter selection, already time-ordered
            filters: Filter selection the pings were fetched for
            now_ms: Epoch ms anchor for synthesized timestamps without a window

        Returns:
            Number of route points retained
        """
        speed = self.clock.speed
        self._cancel_route()

        self.filters = filters
        window_start, window_end = filters.window() if filters is not None else (None, None)
        self.points = normalize_records(records, window_start, window_end, now_ms=now_ms)
        self.battery = estimate_battery([p.battery_percent for p in self.points])
        self._summary = summarize_waypoints(self.points, self.battery)
        self.snapped_path = None
        self.directions_error = None
        self.loaded = True

        self.clock = self._new_clock(len(self.points), speed)

        if self.snapper is not None and len(self.points) >= 2:
            self._snap_task = asyncio.get_running_loop().create_task(
                self._snap(self.raw_path, self._generation)
            )

        dropped = len(records) - len(self.points)
        print(f"[ReplaySession] Loaded {len(self.points)} points ({dropped} dropped)")
        return len(self.points)

    async def _snap(self, path: List[GeoPoint], generation: int):
        snapped = await self.snapper.snap(path)
        if generation != self._generation:
            return
        if snapped:
            self.snapped_path = snapped
            self.directions_error = None
            print(f"[ReplaySession] Snapped overlay: {len(snapped)} vertices")
        else:
            self.directions_error = self.snapper.last_error

    async def wait_for_snap(self):
        """Wait for the pending snap request (if any) to settle"""
        task = self._snap_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def close(self):
        """Tear down: stop playback and discard every in-flight request"""
        self._cancel_route()
        print("[ReplaySession] Closed")

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def play(self):
        self.clock.play()

    def pause(self):
        self.clock.pause()

    def toggle(self):
        self.clock.toggle()

    def reset(self):
        self.clock.reset()

    def seek(self, value: float):
        self.clock.seek(value)

    def set_speed(self, multiplier: float):
        self.clock.set_speed(multiplier)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def summary(self) -> WaypointSummary:
        return self._summary

    def _status_message(self) -> str:
        if not self.loaded:
            return MESSAGE_APPLY_FILTERS
        if not self.points:
            return MESSAGE_NO_DATA
        return MESSAGE_LIVE

    def _location_label(self, position: Optional[GeoPoint], point: Optional[RoutePoint]) -> str:
        label = None
        if self.geocoder is not None and position is not None:
            label = self.geocoder.resolve(position.lat, position.lng) or self.geocoder.label
        if not label and point is not None:
            label = point.label
        if not label and self.filters is not None:
            label = self.filters.area_label
        return label or DEFAULT_LOCATION_LABEL

    def frame(self) -> DisplayFrame:
        """
        Current display state

        May dispatch a background geocode lookup for the marker position;
        never waits for it.
        """
        n = len(self.points)
        path = self.path
        playhead = self.clock.playhead

        position = interpolate_position(playhead, n, path)
        prefix = display_path(playhead, n, path)
        index = current_index(playhead, n)
        point = self.points[index] if n else None
        battery = self.battery[index] if n else None

        filters = self.filters
        filter_error = None
        if filters is not None and not filters.is_complete():
            filter_error = FILTERS_REQUIRED_MESSAGE

        last_ping = humanize_since(point.time, now=self._now()) if point is not None else None

        return DisplayFrame(
            playhead=playhead,
            point_count=n,
            current_index=index,
            state=self.clock.state.value,
            speed_multiplier=self.clock.speed,
            position=position,
            display_path=prefix,
            map_center=path[0] if path else self.default_center,
            snapped=self.snapped_path is not None,
            directions_error=(
                f"directions unavailable: {self.directions_error}" if self.directions_error else None
            ),
            speed_kmh=speed_at(self.points, index),
            distance_km=cumulative_distance_km(prefix),
            battery_percent=battery,
            battery_tone=battery_tone(battery, self.battery_good, self.battery_warn),
            location_label=self._location_label(position, point),
            agent_status=agent_status_for(point),
            last_ping=last_ping or NO_PING_LABEL,
            agent_id=filters.agent_id if filters else None,
            agent_name=filters.sales_rep_label if filters else None,
            area=filters.area_label if filters else None,
            territory=filters.territory_label if filters else None,
            status_message=self._status_message(),
            filter_error=filter_error,
        )

    def get_status(self) -> Dict[str, Any]:
        """Get session status"""
        return {
            "loaded": self.loaded,
            "pointCount": len(self.points),
            "snapped": self.snapped_path is not None,
            "directionsError": self.directions_error,
            "clock": self.clock.get_status(),
        }
