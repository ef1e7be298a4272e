"""
External Provider Models

Status tracking and response shapes for the reverse geocoding and
directions providers.
"""

import time
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from .route import GeoPoint


class ProviderStatus(BaseModel):
    """Status of an external geospatial provider connection"""
    provider: str = "google"
    is_configured: bool = False
    last_request_time: Optional[float] = None
    last_success_time: Optional[float] = None
    last_status: Optional[str] = None
    request_count: int = 0
    error_count: int = 0
    dropped_count: int = 0                # Requests suppressed by the rate limiter
    cache_hit_count: int = 0
    cache_miss_count: int = 0

    def record_request(self):
        self.request_count += 1
        self.last_request_time = time.time()

    def record_success(self):
        self.last_success_time = time.time()
        self.last_status = "OK"

    def record_error(self, status: str):
        self.error_count += 1
        self.last_status = status


class GeocodeResponse(BaseModel):
    """Reverse geocoding response: provider status plus raw results"""
    status: str
    results: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "OK" and bool(self.results)


class DirectionsResponse(BaseModel):
    """Directions response: provider status plus the overview path"""
    status: str
    path: List[GeoPoint] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "OK" and bool(self.path)
