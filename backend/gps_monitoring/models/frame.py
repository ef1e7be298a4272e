"""
Display Frame Model

The single "current display state" handed to the map-rendering layer:
marker position, polyline prefix, kinematics, telemetry and labels.
"""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from .route import GeoPoint


AgentStatus = Literal['online', 'idle', 'offline']
BatteryTone = Literal['good', 'warn', 'low', 'unknown']


class DisplayFrame(BaseModel):
    """Snapshot of the replay view at the current playhead"""
    playhead: float = 0.0
    point_count: int = 0
    current_index: int = 0
    state: str = "paused"
    speed_multiplier: float = 1.0

    # Map
    position: Optional[GeoPoint] = None
    display_path: List[GeoPoint] = Field(default_factory=list)
    map_center: GeoPoint
    snapped: bool = False                 # Road-snapped overlay in use
    directions_error: Optional[str] = None

    # Scalars
    speed_kmh: float = 0.0
    distance_km: float = 0.0
    battery_percent: Optional[int] = None
    battery_tone: BatteryTone = 'unknown'
    location_label: str = "Current location"
    agent_status: AgentStatus = 'idle'
    last_ping: str = "—"

    # Agent / filters
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    area: Optional[str] = None
    territory: Optional[str] = None
    status_message: str = ""
    filter_error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert frame to dictionary for API response"""
        return {
            'playhead': self.playhead,
            'pointCount': self.point_count,
            'currentIndex': self.current_index,
            'state': self.state,
            'speedMultiplier': self.speed_multiplier,
            'position': self.position.to_dict() if self.position else None,
            'displayPath': [p.to_dict() for p in self.display_path],
            'mapCenter': self.map_center.to_dict(),
            'snapped': self.snapped,
            'directionsError': self.directions_error,
            'speedKmh': round(self.speed_kmh, 2),
            'distanceKm': round(self.distance_km, 3),
            'batteryPercent': self.battery_percent,
            'batteryTone': self.battery_tone,
            'locationLabel': self.location_label,
            'agentStatus': self.agent_status,
            'lastPing': self.last_ping,
            'agent': {
                'id': self.agent_id,
                'name': self.agent_name,
                'area': self.area,
                'territory': self.territory,
            },
            'statusMessage': self.status_message,
            'filterError': self.filter_error,
        }
