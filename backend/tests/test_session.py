"""
Replay Session Tests

Tests cover:
- Display frame before and after loading
- Kinematics, battery and labels at the playhead
- Route replacement resets playback
- Road-snapped overlay and directions failures
- Geocoded location label
- Construction from configuration
"""

import pytest
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from gps_monitoring.config import ConfigManager
from gps_monitoring.models import DirectionsResponse, GeocodeResponse, GeoPoint, ReplayFilters
from gps_monitoring.replay import PlaybackState, ReplaySession, distance_km, sample_records
from gps_monitoring.replay.session import (
    MESSAGE_APPLY_FILTERS,
    MESSAGE_LIVE,
    MESSAGE_NO_DATA,
    agent_status_for,
)
from gps_monitoring.services import GeocodeResolver, RouteSnapper


NOW = datetime(2025, 12, 16, 3, 35, tzinfo=timezone.utc)

TWO_PINGS = [
    {"lat": 6.90, "lng": 79.80, "time": "2025-12-16T03:30:00Z"},
    {"lat": 6.91, "lng": 79.81, "time": "2025-12-16T03:31:00Z"},
]


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def session():
    """Session without external providers, ticked manually"""
    return ReplaySession(now=lambda: NOW, autoschedule=False)


@pytest.fixture
def filters():
    return ReplayFilters(
        trackingDate="2025-12-16",
        fromTime="08:00",
        toTime="17:00",
        salesRepId=1042,
        salesRepLabel="A. Silva",
        areaLabel="Colombo",
        territoryLabel="Colombo North",
    )


class FakeTime:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


# ============================================
# Frame derivation
# ============================================

class TestFrameBeforeLoad:
    """Test the empty view"""

    def test_empty_frame(self, session):
        """Test defaults before any filters are applied"""
        frame = session.frame()

        assert frame.status_message == MESSAGE_APPLY_FILTERS
        assert frame.point_count == 0
        assert frame.position is None
        assert frame.display_path == []
        assert frame.map_center == GeoPoint(lat=6.9271, lng=79.8612)
        assert frame.location_label == "Current location"
        assert frame.last_ping == "—"
        assert frame.battery_tone == "unknown"
        assert frame.speed_kmh == 0.0

    def test_has_no_route(self, session):
        """Test has_route before load"""
        assert not session.has_route
        assert not session.loaded


class TestFrameKinematics:
    """Test the two-ping route"""

    def test_start_of_route(self, session):
        """Test the frame at playhead 0"""
        assert session.load(TWO_PINGS) == 2
        frame = session.frame()

        assert frame.status_message == MESSAGE_LIVE
        assert frame.state == "paused"
        assert frame.position == GeoPoint(lat=6.90, lng=79.80)
        assert frame.speed_kmh == 0.0
        assert frame.distance_km == 0.0
        assert frame.map_center == GeoPoint(lat=6.90, lng=79.80)

    def test_midpoint(self, session):
        """Test position and distance halfway along"""
        session.load(TWO_PINGS)
        session.seek(0.5)
        frame = session.frame()

        assert frame.position.lat == pytest.approx(6.905)
        assert frame.position.lng == pytest.approx(79.805)
        assert len(frame.display_path) == 2
        total = distance_km(GeoPoint(lat=6.90, lng=79.80), GeoPoint(lat=6.91, lng=79.81))
        assert frame.distance_km == pytest.approx(total / 2, rel=1e-3)

    def test_end_of_route(self, session):
        """Test speed and distance at the last point"""
        session.load(TWO_PINGS)
        session.seek(1)
        frame = session.frame()

        total = distance_km(GeoPoint(lat=6.90, lng=79.80), GeoPoint(lat=6.91, lng=79.81))
        assert frame.current_index == 1
        assert frame.distance_km == pytest.approx(total)
        assert frame.speed_kmh == pytest.approx(total * 60)

    def test_no_data(self, session, filters):
        """Test a load without usable pings"""
        assert session.load([{"lat": None, "lng": 79.8}], filters) == 0
        frame = session.frame()

        assert frame.status_message == MESSAGE_NO_DATA
        assert frame.position is None
        assert frame.location_label == "Colombo"

    def test_playback_advances_frame(self):
        """Test ticks move the marker"""
        fake_time = FakeTime()
        session = ReplaySession(time_source=fake_time, autoschedule=False)
        session.load(TWO_PINGS)
        session.play()
        fake_time.now += 0.4
        session.clock.tick()

        frame = session.frame()
        assert frame.state == "playing"
        assert frame.playhead == pytest.approx(0.5)
        assert frame.position.lat == pytest.approx(6.905)


class TestFrameTelemetry:
    """Test battery, status and labels"""

    def test_battery_gap_filled(self, session):
        """Test a missing reading between 40 and 60 shows 50"""
        records = [dict(p) for p in TWO_PINGS] + [
            {"lat": 6.92, "lng": 79.82, "time": "2025-12-16T03:32:00Z", "batteryPercentage": "60%"},
        ]
        records[0]["batteryPercentage"] = 40
        session.load(records)
        session.seek(1)
        frame = session.frame()

        assert frame.battery_percent == 50
        assert frame.battery_tone == "warn"

    def test_agent_status(self, session):
        """Test check-in / check-out status"""
        session.load([
            {"lat": 6.90, "lng": 79.80, "isCheckIn": True, "outletName": "Colombo Traders"},
            {"lat": 6.91, "lng": 79.81, "isCheckOut": True},
            {"lat": 6.92, "lng": 79.82},
        ], now_ms=1765855800000)

        assert session.frame().agent_status == "online"
        session.seek(1)
        assert session.frame().agent_status == "offline"
        session.seek(2)
        assert session.frame().agent_status == "idle"
        assert agent_status_for(None) == "idle"

    def test_point_label_then_area(self, session, filters):
        """Test label fallback order without a geocoder"""
        session.load([
            {"lat": 6.90, "lng": 79.80, "time": "2025-12-16T03:30:00Z", "outletName": "Colombo Traders"},
            {"lat": 6.91, "lng": 79.81, "time": "2025-12-16T03:31:00Z"},
        ], filters)

        assert session.frame().location_label == "Colombo Traders"
        session.seek(1)
        assert session.frame().location_label == "Colombo"

    def test_last_ping(self, session):
        """Test the relative last-ping label"""
        session.load(TWO_PINGS)
        assert session.frame().last_ping == "5 minutes ago"

    def test_agent_fields(self, session, filters):
        """Test filter labels appear on the frame"""
        session.load(TWO_PINGS, filters)
        data = session.frame().to_dict()

        assert data["agent"] == {
            "id": "SR-1042",
            "name": "A. Silva",
            "area": "Colombo",
            "territory": "Colombo North",
        }
        assert data["filterError"] is None

    def test_incomplete_filters_warned(self, session):
        """Test incomplete filters surface a warning"""
        session.load(TWO_PINGS, ReplayFilters(trackingDate="2025-12-16"))
        assert "sales rep" in session.frame().filter_error


# ============================================
# Route lifecycle
# ============================================

class TestRouteLifecycle:
    """Test loading and teardown"""

    def test_load_resets_clock_keeps_speed(self, session):
        """Test a new route starts paused at 0 with the chosen speed"""
        session.load(TWO_PINGS)
        session.set_speed(2)
        session.play()
        session.seek(1)

        session.load(sample_records())

        assert session.clock.playhead == 0.0
        assert session.clock.state == PlaybackState.PAUSED
        assert session.clock.speed == 2.0
        assert session.frame().point_count == 121

    def test_old_clock_closed(self, session):
        """Test the replaced clock can never advance"""
        session.load(TWO_PINGS)
        old_clock = session.clock
        session.load(TWO_PINGS)
        assert old_clock.closed

    def test_invalid_speed(self, session):
        """Test unsupported speeds raise"""
        session.load(TWO_PINGS)
        with pytest.raises(ValueError):
            session.set_speed(3)

    def test_summary(self, session):
        """Test outlet and invoice summary for the sample route"""
        session.load(sample_records())
        summary = session.summary()

        assert len(summary.outlets) == 14
        assert summary.outlets[-1].key == "Colombo"
        assert summary.invoices == []

    def test_close(self, session):
        """Test teardown stops playback"""
        session.load(TWO_PINGS)
        session.play()
        session.close()

        assert session.clock.closed
        assert not session.clock.is_playing

    def test_from_config(self, tmp_path):
        """Test settings come from the config files"""
        (tmp_path / "replay.yaml").write_text(
            "replay:\n"
            "  baseStepMs: 400\n"
            "  tickIntervalMs: 50\n"
            "  speedOptions: [1, 2, 8]\n"
            "  defaultSpeed: 2\n"
            "map:\n"
            "  defaultCenter: {lat: 7.29, lng: 80.63}\n"
            "battery:\n"
            "  goodThreshold: 80\n"
            "  warnThreshold: 20\n"
        )
        session = ReplaySession.from_config(ConfigManager(str(tmp_path)), autoschedule=False)

        assert session.base_step_ms == 400.0
        assert session.tick_interval == pytest.approx(0.05)
        assert session.clock.speed == 2.0
        assert session.speed_options == (1.0, 2.0, 8.0)
        assert session.frame().map_center == GeoPoint(lat=7.29, lng=80.63)
        assert session.battery_good == 80


# ============================================
# External providers
# ============================================

class TestSnappedOverlay:
    """Test the road-snapped path"""

    @pytest.mark.asyncio
    async def test_snapped_path_used(self):
        """Test the overlay replaces the raw path for the marker"""
        snapped = [GeoPoint(lat=6.90 + i * 0.0025, lng=79.80 + i * 0.0025) for i in range(5)]
        provider = AsyncMock()
        provider.route.return_value = DirectionsResponse(status="OK", path=snapped)
        session = ReplaySession(snapper=RouteSnapper(provider), autoschedule=False)

        session.load(TWO_PINGS)
        await session.wait_for_snap()
        session.seek(0.5)
        frame = session.frame()

        assert frame.snapped
        assert frame.position == snapped[2]
        assert frame.directions_error is None
        session.close()

    @pytest.mark.asyncio
    async def test_snap_failure_falls_back(self):
        """Test a failed snap keeps the raw path and reports status"""
        provider = AsyncMock()
        provider.route.return_value = DirectionsResponse(status="ZERO_RESULTS")
        session = ReplaySession(snapper=RouteSnapper(provider), autoschedule=False)

        session.load(TWO_PINGS)
        await session.wait_for_snap()
        session.seek(0.5)
        frame = session.frame()

        assert not frame.snapped
        assert frame.position.lat == pytest.approx(6.905)
        assert frame.directions_error == "directions unavailable: ZERO_RESULTS"

    @pytest.mark.asyncio
    async def test_single_point_not_snapped(self):
        """Test no snap request for one-point routes"""
        provider = AsyncMock()
        session = ReplaySession(snapper=RouteSnapper(provider), autoschedule=False)

        session.load(TWO_PINGS[:1])
        await session.wait_for_snap()
        provider.route.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_snap_discarded(self):
        """Test a snap for a replaced route never applies"""
        release = asyncio.Event()
        stale = [GeoPoint(lat=1.0, lng=1.0), GeoPoint(lat=2.0, lng=2.0)]

        async def slow_route(origin, destination, waypoints):
            await release.wait()
            return DirectionsResponse(status="OK", path=stale)

        provider = AsyncMock()
        provider.route.side_effect = slow_route
        snapper = RouteSnapper(provider)
        session = ReplaySession(snapper=snapper, autoschedule=False)

        session.load(TWO_PINGS)
        first_task = session._snap_task
        await asyncio.sleep(0)
        session.snapper = None
        session.load(TWO_PINGS)
        release.set()
        await asyncio.gather(first_task, return_exceptions=True)

        assert session.snapped_path is None
        assert not session.frame().snapped


class TestGeocodedLabel:
    """Test the geocoded location label"""

    @pytest.mark.asyncio
    async def test_label_arrives_later(self, filters):
        """Test the frame never waits for the geocoder"""
        provider = AsyncMock()
        provider.reverse_geocode.return_value = GeocodeResponse(status="OK", results=[
            {"address_components": [{"long_name": "Dehiwala", "types": ["locality"]}]}
        ])
        resolver = GeocodeResolver(provider, time_source=FakeTime())
        session = ReplaySession(geocoder=resolver, autoschedule=False)

        session.load(TWO_PINGS, filters)
        assert session.frame().location_label == "Colombo"

        await resolver.wait_pending()
        assert session.frame().location_label == "Dehiwala"

    @pytest.mark.asyncio
    async def test_load_clears_label(self, filters):
        """Test a new route forgets the previous place label"""
        provider = AsyncMock()
        provider.reverse_geocode.return_value = GeocodeResponse(status="OK", results=[
            {"address_components": [{"long_name": "Dehiwala", "types": ["locality"]}]}
        ])
        resolver = GeocodeResolver(provider, time_source=FakeTime())
        session = ReplaySession(geocoder=resolver, autoschedule=False)

        session.load(TWO_PINGS, filters)
        session.frame()
        await resolver.wait_pending()
        assert resolver.label == "Dehiwala"

        session.load(TWO_PINGS, filters)
        assert resolver.label is None
