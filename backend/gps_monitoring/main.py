"""
GPS Monitoring Replay
Main FastAPI Application Entry Point

Serves the replay engine for the field-agent GPS monitoring screen.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from gps_monitoring import __version__

# Load environment variables
load_dotenv()

START_TIME = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown"""
    # Startup
    print("=" * 60)
    print("[STARTUP] GPS Monitoring Replay")
    print("=" * 60)

    from gps_monitoring.config import get_config
    cfg = get_config()
    print("[OK] Configuration loaded")

    if cfg.get_api_key():
        print("[OK] Maps provider key found - geocoding and route snapping enabled")
    else:
        print("[INFO] GOOGLE_MAPS_API_KEY not set. Replay runs on raw paths.")

    print("=" * 60)
    print("[SERVER] Ready at http://localhost:8000")
    print("[DOCS] API docs at http://localhost:8000/docs")
    print("[REPLAY] Load a route - use POST /api/replay/demo to try the sample")
    print("=" * 60)

    yield

    # Shutdown
    print("[SHUTDOWN] Shutting down...")
    from gps_monitoring.api.replay_routes import close_replay_session
    await close_replay_session()
    print("[SHUTDOWN] Complete")


# Create FastAPI application
app = FastAPI(
    title="GPS Monitoring Replay API",
    description="Field-agent GPS track replay engine",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",  # Alternative dev server
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Include API Routers
# ============================================

from gps_monitoring.api import replay_router

# Replay routes: /api/replay/load, /api/replay/play, /api/replay/frame, etc.
app.include_router(replay_router)


# ============================================
# Root Endpoints
# ============================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint - API information"""
    return {
        "name": "GPS Monitoring Replay",
        "version": __version__,
        "status": "operational",
        "documentation": "/docs",
        "endpoints": {
            "load": "/api/replay/load",
            "demo": "/api/replay/demo",
            "controls": "/api/replay/{play,pause,toggle,reset,seek,speed}",
            "frame": "/api/replay/frame",
            "summary": "/api/replay/summary",
            "status": "/api/replay/status",
        }
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "uptime": time.time() - START_TIME,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "gps_monitoring.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
