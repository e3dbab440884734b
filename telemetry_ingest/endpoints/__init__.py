"""Routers HTTP del servicio de telemetría."""

from .health import router as health_router
from .latest_readings import router as latest_readings_router
from .prometheus import router as prometheus_router

__all__ = [
    "health_router",
    "latest_readings_router",
    "prometheus_router",
]
