"""
Replay Routes - GPS track replay endpoints

Endpoints:
- POST /api/replay/load - Load raw pings for a filter selection
- POST /api/replay/demo - Load the built-in sample route
- POST /api/replay/play - Start playback
- POST /api/replay/pause - Pause playback
- POST /api/replay/toggle - Toggle play/pause
- POST /api/replay/reset - Rewind and restart
- POST /api/replay/seek - Scrub to a playhead value (pauses)
- POST /api/replay/speed - Change speed multiplier
- GET /api/replay/frame - Current display frame
- GET /api/replay/summary - Outlet and invoice visit rows
- GET /api/replay/status - Session and provider status
"""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from gps_monitoring.config import get_config
from gps_monitoring.models import ProviderStatus, ReplayFilters
from gps_monitoring.replay import ReplaySession, sample_records
from gps_monitoring.services import (
    GeocodeResolver,
    GoogleDirectionsProvider,
    GoogleGeocodeProvider,
    RouteSnapper,
)

router = APIRouter(prefix="/api/replay", tags=["replay"])


# ============================================
# Request Models
# ============================================

class LoadRequest(BaseModel):
    """Raw pings for one agent/date/time-window selection"""
    filters: Optional[ReplayFilters] = Field(
        default=None,
        description="Filter selection the pings were fetched for"
    )
    records: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Raw ping records, already time-ordered"
    )


class SeekRequest(BaseModel):
    """Scrub to a playhead value (clamped to the route)"""
    value: float = Field(..., description="Playhead in point-index units")


class SpeedRequest(BaseModel):
    """Change playback speed"""
    multiplier: float = Field(..., description="Speed multiplier, e.g. 0.5, 1, 2")


DEMO_FILTERS = ReplayFilters(
    trackingDate="2025-12-16",
    fromTime="09:00",
    toTime="11:00",
    salesRepId=1,
    salesRepLabel="Demo Rep",
    areaLabel="Colombo",
    territoryLabel="Western",
)


# ============================================
# Global session
# ============================================

_session: Optional[ReplaySession] = None


def create_replay_session() -> ReplaySession:
    """Build a session from configuration; providers only when a key is set"""
    cfg = get_config()
    api_key = cfg.get_api_key()

    geocoder = None
    snapper = None
    if api_key:
        geocode_cfg = cfg.get_geocode_config()
        directions_cfg = cfg.get_directions_config()
        geocoder = GeocodeResolver(
            GoogleGeocodeProvider(
                api_key=api_key,
                language=geocode_cfg.get("language", "en"),
                timeout_seconds=float(geocode_cfg.get("timeoutSeconds", 10)),
            ),
            cooldown_seconds=float(geocode_cfg.get("cooldownSeconds", 4)),
            precision=int(geocode_cfg.get("precision", 3)),
        )
        snapper = RouteSnapper(
            GoogleDirectionsProvider(
                api_key=api_key,
                travel_mode=directions_cfg.get("travelMode", "driving"),
                timeout_seconds=float(directions_cfg.get("timeoutSeconds", 10)),
            ),
            max_waypoints=int(directions_cfg.get("maxWaypoints", 20)),
        )
    else:
        print("[Replay] GOOGLE_MAPS_API_KEY not set - geocoding and route snapping disabled")

    return ReplaySession.from_config(cfg, geocoder=geocoder, snapper=snapper)


def set_replay_session(session: Optional[ReplaySession]):
    """Set the session used by the API routes"""
    global _session
    _session = session


def get_replay_session() -> ReplaySession:
    """Get the global session, creating it on first use"""
    global _session
    if _session is None:
        _session = create_replay_session()
    return _session


async def close_replay_session():
    """Tear down the global session and its provider connections"""
    global _session
    session = _session
    _session = None
    if session is None:
        return
    session.close()
    for wrapper in (session.geocoder, session.snapper):
        provider = getattr(wrapper, "provider", None)
        if provider is not None and hasattr(provider, "close"):
            await provider.close()


def _require_route() -> ReplaySession:
    session = get_replay_session()
    if not session.loaded:
        raise HTTPException(status_code=404, detail="No route loaded")
    return session


# ============================================
# Endpoints
# ============================================

@router.post("/load")
async def load_route(request: LoadRequest):
    """
    Load raw pings and start a fresh replay (paused at the first point)

    Example:
    ```
    curl -X POST http://localhost:8000/api/replay/load \\
      -H "Content-Type: application/json" \\
      -d '{"filters":{"trackingDate":"2025-12-16","fromTime":"08:00","toTime":"17:00","salesRepId":7},
           "records":[{"latitude":6.90,"longitude":79.80,"gpsTime":"2025-12-16T03:30:00Z"}]}'
    ```
    """
    session = get_replay_session()
    session.load(request.records, request.filters)
    return session.frame().to_dict()


@router.post("/demo")
async def load_demo(step_seconds: int = Query(60, ge=1, le=3600, alias="stepSeconds")):
    """Load the built-in Kalutara -> Colombo sample route"""
    session = get_replay_session()
    session.load(sample_records(step_seconds), DEMO_FILTERS)
    return session.frame().to_dict()


@router.post("/play")
async def play():
    """Start playback (no-op for routes under 2 points)"""
    session = _require_route()
    session.play()
    return session.frame().to_dict()


@router.post("/pause")
async def pause():
    """Pause playback"""
    session = _require_route()
    session.pause()
    return session.frame().to_dict()


@router.post("/toggle")
async def toggle():
    """Toggle play/pause"""
    session = _require_route()
    session.toggle()
    return session.frame().to_dict()


@router.post("/reset")
async def reset():
    """Rewind to the first point and restart playback"""
    session = _require_route()
    session.reset()
    return session.frame().to_dict()


@router.post("/seek")
async def seek(request: SeekRequest):
    """Scrub to a playhead value; always pauses"""
    session = _require_route()
    session.seek(request.value)
    return session.frame().to_dict()


@router.post("/speed")
async def set_speed(request: SpeedRequest):
    """Change the playback speed multiplier"""
    session = _require_route()
    try:
        session.set_speed(request.multiplier)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.frame().to_dict()


@router.get("/frame")
async def get_frame():
    """Current display frame"""
    session = _require_route()
    return session.frame().to_dict()


@router.get("/summary")
async def get_summary():
    """Last-seen rows per outlet and per invoice"""
    session = _require_route()
    return session.summary().to_dict()


@router.get("/status")
async def get_status():
    """Session, geocoding and directions status"""
    session = get_replay_session()
    geocode_status = session.geocoder.status if session.geocoder else ProviderStatus()
    directions_status = session.snapper.status if session.snapper else ProviderStatus()
    return {
        "session": session.get_status(),
        "geocode": geocode_status.model_dump(),
        "directions": directions_status.model_dump(),
    }
