"""
API Routes Package

This module exports all FastAPI routers for GPS monitoring replay.
"""

from .replay_routes import router as replay_router

__all__ = [
    "replay_router",
]
