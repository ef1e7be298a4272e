"""
Record Normalizer Tests

Tests cover:
- Coordinate parsing and silent exclusion of bad pings
- Timestamp field priority, epoch-ms and ISO parsing
- Fallback timestamps across the filter window
- Marker labels, battery and invoice fields
- Time-of-day filter parsing
"""

import pytest
from datetime import datetime, timedelta

from gps_monitoring.models import ReplayFilters, FILTERS_REQUIRED_MESSAGE
from gps_monitoring.replay.normalizer import (
    normalize_records,
    build_point_label,
    resolve_record_time,
    to_number,
)
from gps_monitoring.timeutils import (
    normalize_time_24h,
    normalize_time_value,
    parse_date_time,
    to_iso,
)


# 2025-12-16T03:30:00Z
T0_MS = 1765855800000


# ============================================
# Coordinates
# ============================================

class TestCoordinates:
    """Test coordinate parsing and exclusion"""

    def test_two_pings_become_two_points(self):
        """Test the basic two-ping route"""
        points = normalize_records([
            {"lat": 6.90, "lng": 79.80, "time": "2025-12-16T03:30:00Z"},
            {"lat": 6.91, "lng": 79.81, "time": "2025-12-16T03:31:00Z"},
        ])

        assert len(points) == 2
        assert points[0].lat == 6.90
        assert points[1].lng == 79.81
        assert points[0].time == "2025-12-16T03:30:00.000Z"
        assert points[1].time == "2025-12-16T03:31:00.000Z"

    def test_unparsable_coordinates_dropped(self):
        """Test pings without usable lat/lng are skipped"""
        records = [
            {"lat": 6.9, "lng": 79.8},
            {"lat": "abc", "lng": 79.8},
            {"latitude": None, "longitude": 79.8},
            {"lat": 6.9},
            {"lat": float("nan"), "lng": 79.8},
            "not a record",
            {"latitude": "6.95", "longitude": " 79.85 "},
        ]
        points = normalize_records(records, now_ms=T0_MS)

        assert len(points) == 2
        assert len(points) <= len(records)
        assert points[1].lat == 6.95
        assert points[1].lng == 79.85

    def test_all_valid_keeps_count(self):
        """Test output count equals input count when every ping is valid"""
        records = [{"lat": 6.9 + i * 0.001, "lng": 79.8} for i in range(5)]
        assert len(normalize_records(records, now_ms=T0_MS)) == 5

    def test_latitude_preferred_over_lat(self):
        """Test long field names win over short ones"""
        points = normalize_records(
            [{"latitude": 6.5, "lat": 1.0, "longitude": 79.5, "lng": 2.0}],
            now_ms=T0_MS,
        )
        assert points[0].lat == 6.5
        assert points[0].lng == 79.5

    def test_empty_input(self):
        """Test empty input gives an empty route"""
        assert normalize_records([]) == []

    def test_to_number(self):
        """Test numeric coercion"""
        assert to_number("12.5") == 12.5
        assert to_number(3) == 3.0
        assert to_number("") is None
        assert to_number(True) is None
        assert to_number(float("inf")) is None


# ============================================
# Timestamps
# ============================================

class TestTimestamps:
    """Test timestamp resolution"""

    def test_field_priority(self):
        """Test the first parsable candidate field wins"""
        record = {
            "time": "not a time",
            "gpsTime": "2025-12-16T03:30:00Z",
            "createdAt": "2025-12-16T04:00:00Z",
        }
        assert resolve_record_time(record, "fallback") == "2025-12-16T03:30:00.000Z"

    def test_fallback_when_no_field(self):
        """Test the fallback is used when nothing parses"""
        assert resolve_record_time({"timestamp": ""}, "fallback") == "fallback"

    def test_epoch_milliseconds(self):
        """Test numbers and numeric strings are epoch milliseconds"""
        assert normalize_time_value(T0_MS) == "2025-12-16T03:30:00.000Z"
        assert normalize_time_value(str(T0_MS)) == "2025-12-16T03:30:00.000Z"

    def test_iso_with_offset(self):
        """Test offsets are converted to UTC"""
        assert normalize_time_value("2025-12-16T09:00:00+05:30") == "2025-12-16T03:30:00.000Z"

    def test_invalid_values(self):
        """Test unparsable values are rejected"""
        assert normalize_time_value("yesterday") is None
        assert normalize_time_value(None) is None
        assert normalize_time_value(True) is None
        assert normalize_time_value(1e20) is None

    def test_short_fraction(self):
        """Test fractional seconds of any length parse"""
        assert normalize_time_value("2025-12-16T03:30:00.12Z") == "2025-12-16T03:30:00.120Z"
        assert normalize_time_value("2025-12-16T09:00:00.5+05:30") == "2025-12-16T03:30:00.500Z"

    @pytest.mark.parametrize("raw", [
        "0001-01-01T00:00:00+01:00",
        "9999-12-31T23:59:59-01:00",
        "0001-01-01T00:00:00",
    ])
    def test_out_of_range_time_uses_fallback(self, raw):
        """Test a time that cannot be converted to UTC keeps the point"""
        assert normalize_time_value(raw) is None

        points = normalize_records(
            [{"latitude": 6.9, "longitude": 79.8, "time": raw}],
            now_ms=T0_MS,
        )
        assert len(points) == 1
        assert points[0].time == "2025-12-16T03:30:00.000Z"

    def test_out_of_range_time_falls_through(self):
        """Test the next candidate field is used after an out-of-range time"""
        points = normalize_records(
            [{"lat": 6.9, "lng": 79.8, "time": "9999-12-31T23:59:59-01:00", "gpsTime": T0_MS + 60000}],
            now_ms=T0_MS,
        )
        assert points[0].time == "2025-12-16T03:31:00.000Z"

    def test_fallback_without_window(self):
        """Test missing times step one minute from now"""
        points = normalize_records(
            [{"lat": 6.9, "lng": 79.8}, {"lat": 6.91, "lng": 79.81}],
            now_ms=T0_MS,
        )
        assert points[0].time == "2025-12-16T03:30:00.000Z"
        assert points[1].time == "2025-12-16T03:31:00.000Z"

    def test_fallback_uses_raw_index(self):
        """Test dropped pings still consume a fallback slot"""
        points = normalize_records(
            [{"lat": 6.9, "lng": 79.8}, {"lat": None, "lng": 79.8}, {"lat": 6.92, "lng": 79.82}],
            now_ms=T0_MS,
        )
        assert len(points) == 2
        assert points[1].time == "2025-12-16T03:32:00.000Z"

    def test_fallback_spread_across_window(self):
        """Test missing times are spread evenly over the window"""
        start = datetime(2025, 12, 16, 8, 0)
        end = datetime(2025, 12, 16, 8, 10)
        records = [{"lat": 6.9, "lng": 79.8 + i * 0.01} for i in range(3)]

        points = normalize_records(records, start, end)

        assert [p.time for p in points] == [
            to_iso(start),
            to_iso(start + timedelta(minutes=5)),
            to_iso(end),
        ]

    def test_known_times_kept_with_window(self):
        """Test parsed times are never replaced by the fallback"""
        start = datetime(2025, 12, 16, 8, 0)
        end = datetime(2025, 12, 16, 9, 0)
        points = normalize_records(
            [{"lat": 6.9, "lng": 79.8, "gpsTime": T0_MS}],
            start, end,
        )
        assert points[0].time == "2025-12-16T03:30:00.000Z"


# ============================================
# Labels and telemetry
# ============================================

class TestPointFields:
    """Test label, battery and visit fields"""

    def test_full_label(self):
        """Test outlet, invoice and check-in parts are joined"""
        record = {"outletName": "Colombo Traders", "invoiceNumber": " INV-7 ", "isCheckIn": True}
        assert build_point_label(record) == "Colombo Traders • Invoice INV-7 • Check-in"

    def test_check_out_label(self):
        """Test check-out suffix"""
        assert build_point_label({"isCheckOut": True}) == "Check-out"

    def test_no_label(self):
        """Test records without visit data have no label"""
        assert build_point_label({"lat": 1}) is None
        assert build_point_label({"invoiceNumber": "   "}) is None

    def test_battery_string_parsed(self):
        """Test "45%" parses to 45"""
        points = normalize_records(
            [{"lat": 6.9, "lng": 79.8, "batteryPercentage": "45%"}],
            now_ms=T0_MS,
        )
        assert points[0].battery_percent == 45

    def test_visit_fields(self):
        """Test outlet, invoice and flags are carried through"""
        points = normalize_records([
            {"lat": 6.9, "lng": 79.8, "outletName": "Kandy Stores", "invoiceNumber": 1001,
             "isCheckIn": True, "isCheckOut": "yes"},
        ], now_ms=T0_MS)

        point = points[0]
        assert point.outlet_name == "Kandy Stores"
        assert point.invoice_id == 1001
        assert point.is_check_in is True
        assert point.is_check_out is None
        assert point.label == "Kandy Stores • Invoice 1001 • Check-in"


# ============================================
# Filters
# ============================================

class TestFilters:
    """Test filter time parsing"""

    @pytest.mark.parametrize("raw,expected", [
        ("8:05", "08:05"),
        ("17:30", "17:30"),
        ("17:30:59", "17:30"),
        ("12:00 AM", "00:00"),
        ("12:15 PM", "12:15"),
        ("5:30 pm", "17:30"),
        ("24:00", None),
        ("13:00 PM", None),
        ("9.30", None),
        ("", None),
        (None, None),
    ])
    def test_normalize_time_24h(self, raw, expected):
        """Test 24h and 12h time-of-day formats"""
        assert normalize_time_24h(raw) == expected

    def test_parse_date_time(self):
        """Test date and time combine into a local datetime"""
        assert parse_date_time("2025-12-16", "05:30 PM") == datetime(2025, 12, 16, 17, 30)
        assert parse_date_time("2025-13-40", "08:00") is None
        assert parse_date_time(None, "08:00") is None

    def test_complete_filters(self):
        """Test a complete selection and its window"""
        filters = ReplayFilters(
            trackingDate="2025-12-16", fromTime="08:00", toTime="17:00", salesRepId=1042
        )
        assert filters.is_complete()
        assert filters.window() == (datetime(2025, 12, 16, 8, 0), datetime(2025, 12, 16, 17, 0))
        assert filters.agent_id == "SR-1042"

    def test_incomplete_filters(self):
        """Test missing rep or bad time makes filters incomplete"""
        assert not ReplayFilters(trackingDate="2025-12-16", fromTime="08:00", toTime="17:00").is_complete()
        assert not ReplayFilters(
            trackingDate="2025-12-16", fromTime="08:00", toTime="25:00", salesRepId=1
        ).is_complete()
        assert "sales rep" in FILTERS_REQUIRED_MESSAGE

    def test_snake_case_population(self):
        """Test filters accept field names as well as aliases"""
        filters = ReplayFilters(tracking_date="2025-12-16", sales_rep_id=7)
        assert filters.tracking_date == "2025-12-16"
        assert filters.agent_id == "SR-7"
