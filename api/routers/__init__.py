"""
Router package for the GymFlow Classes API.

This package contains all API routers organized by domain:
- health: Health check endpoints
- classes: Catalog, sessions, detail and recommendations
- bookings: Member bookings, booking actions and trainer sessions
"""

from api.routers.health import router as health_router
from api.routers.classes import router as classes_router
from api.routers.bookings import router as bookings_router

__all__ = [
    "health_router",
    "classes_router",
    "bookings_router",
]
