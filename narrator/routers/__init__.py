"""
FastAPI routers.
"""
from narrator.routers.health import router as health_router
from narrator.routers.voices import router as voices_router
from narrator.routers.jobs import router as jobs_router

__all__ = ['health_router', 'voices_router', 'jobs_router']
