"""API routers."""

from mkcode.routers.admin import router as admin_router
from mkcode.routers.auth import router as auth_router
from mkcode.routers.profile import router as profile_router

__all__ = ["auth_router", "profile_router", "admin_router"]
