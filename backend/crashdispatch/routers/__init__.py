"""API routers."""

from crashdispatch.routers.accidents import router as accidents_router
from crashdispatch.routers.dispatch import router as dispatch_router
from crashdispatch.routers.emergency_services import router as emergency_services_router
from crashdispatch.routers.health import router as health_router
from crashdispatch.routers.notifications import router as notifications_router
from crashdispatch.routers.severity import router as severity_router

__all__ = [
    "accidents_router",
    "dispatch_router",
    "emergency_services_router",
    "health_router",
    "notifications_router",
    "severity_router",
]
