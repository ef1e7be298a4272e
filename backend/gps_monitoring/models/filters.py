"""
Replay Filter Models

The agent/date/time-window selection that a route is loaded for.
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, Tuple

from gps_monitoring.timeutils import normalize_time_24h, parse_date_time


FILTERS_REQUIRED_MESSAGE = (
    "Select a sales rep, tracking date, and time range to load GPS data."
)


class ReplayFilters(BaseModel):
    """
    Filter selection for GPS monitoring

    Field aliases follow the monitoring screen's payload (camelCase).
    """
    tracking_date: Optional[str] = Field(default=None, alias="trackingDate")
    from_time: Optional[str] = Field(default=None, alias="fromTime")
    to_time: Optional[str] = Field(default=None, alias="toTime")
    sales_rep_id: Optional[int] = Field(default=None, alias="salesRepId")
    area_id: Optional[int] = Field(default=None, alias="areaId")
    territory_id: Optional[int] = Field(default=None, alias="territoryId")
    sales_rep_label: Optional[str] = Field(default=None, alias="salesRepLabel")
    area_label: Optional[str] = Field(default=None, alias="areaLabel")
    territory_label: Optional[str] = Field(default=None, alias="territoryLabel")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "trackingDate": "2025-12-16",
                "fromTime": "08:00",
                "toTime": "05:30 PM",
                "salesRepId": 1042,
                "areaLabel": "Colombo"
            }
        }

    def window(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Declared time window (start, end) in local wall-clock time"""
        return (
            parse_date_time(self.tracking_date, self.from_time),
            parse_date_time(self.tracking_date, self.to_time),
        )

    def is_complete(self) -> bool:
        """True when rep, date and a parsable time range are all set"""
        if not self.sales_rep_id or not self.tracking_date:
            return False
        if normalize_time_24h(self.from_time) is None:
            return False
        if normalize_time_24h(self.to_time) is None:
            return False
        start, end = self.window()
        return start is not None and end is not None

    @property
    def agent_id(self) -> Optional[str]:
        return f"SR-{self.sales_rep_id}" if self.sales_rep_id else None
