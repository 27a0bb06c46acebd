"""Database models."""
from .user import User
from .device import Device
from .service import Service
from .service_url import ServiceUrl
from .uptime_check import UptimeCheck
from .alert import AlertLog
from .alert_settings import AlertSettings
from .alert_profile import AlertProfile

__all__ = [
    "User",
    "Device",
    "Service",
    "ServiceUrl",
    "UptimeCheck",
    "AlertLog",
    "AlertSettings",
    "AlertProfile",
]
