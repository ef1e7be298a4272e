"""
Route Data Models

Normalized route points, plain coordinates and the per-outlet /
per-invoice summary rows derived from a replayed route.
"""

from pydantic import BaseModel
from typing import Optional, Union


class GeoPoint(BaseModel):
    """GPS coordinate (latitude, longitude)"""
    lat: float                            # Latitude (-90 to 90)
    lng: float                            # Longitude (-180 to 180)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {"lat": 6.9271, "lng": 79.8612}
        }

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


class RoutePoint(BaseModel):
    """
    A normalized, time-resolved ping retained for replay

    Immutable; a route is rebuilt from scratch whenever the filter
    selection changes.
    """
    lat: float
    lng: float
    time: str                             # ISO-8601 UTC timestamp
    label: Optional[str] = None           # "Outlet • Invoice 12 • Check-in"
    battery_percent: Optional[int] = None # Raw reading 0-100, None if absent
    is_check_in: Optional[bool] = None
    is_check_out: Optional[bool] = None
    outlet_name: Optional[str] = None
    invoice_id: Optional[Union[str, int]] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "lat": 6.9271,
                "lng": 79.8612,
                "time": "2025-12-16T05:30:00.000Z",
                "label": "Colombo Traders • Invoice INV-1001",
                "battery_percent": 88,
                "outlet_name": "Colombo Traders",
                "invoice_id": "INV-1001"
            }
        }

    @property
    def coordinate(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return {
            "lat": self.lat,
            "lng": self.lng,
            "time": self.time,
            "label": self.label,
            "batteryPercent": self.battery_percent,
            "isCheckIn": self.is_check_in,
            "isCheckOut": self.is_check_out,
            "outletName": self.outlet_name,
            "invoiceId": self.invoice_id,
        }


class SummaryRow(BaseModel):
    """Last-seen row for one outlet or one invoice"""
    key: str
    title: str
    lat: float
    lng: float
    battery_percent: Optional[int] = None # Gap-filled estimate at that point
    time: str
    time_key: float                       # Epoch ms, or point index if unparsable

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "title": self.title,
            "lat": self.lat,
            "lng": self.lng,
            "batteryPercent": self.battery_percent,
            "time": self.time,
            "timeKey": self.time_key,
        }
