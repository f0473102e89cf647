"""
API routers package.
"""
from memoria.routers.users import router as users_router
from memoria.routers.albums import router as albums_router
from memoria.routers.photos import router as photos_router
from memoria.routers.health import router as health_router

__all__ = ["users_router", "albums_router", "photos_router", "health_router"]
