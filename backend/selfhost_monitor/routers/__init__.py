"""API routers."""
from .users import router as users_router
from .devices import router as devices_router
from .services import router as services_router
from .targets import router as targets_router
from .alerts import settings_router as alert_settings_router, profiles_router as alert_profiles_router
from .status import router as status_router

__all__ = [
    "users_router",
    "devices_router",
    "services_router",
    "targets_router",
    "alert_settings_router",
    "alert_profiles_router",
    "status_router",
]
