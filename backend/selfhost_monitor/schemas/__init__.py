"""Pydantic schemas for API request/response models."""
from .user import UserCreate, UserLogin, UserResponse, NotificationPreferences
from .target import (
    TargetCreate,
    TargetUpdate,
    TargetResponse,
    TargetWithStatus,
    CheckResponse,
    ProbeResponse,
)
from .inventory import DeviceCreate, DeviceResponse, ServiceCreate, ServiceResponse
from .alerts import (
    AlertSettingsResponse,
    AlertSettingsUpdate,
    AlertProfileCreate,
    AlertProfileUpdate,
    AlertProfileResponse,
    AlertProfileDuplicate,
)
from .status import StatusOverview, TargetSummary

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "NotificationPreferences",
    "TargetCreate",
    "TargetUpdate",
    "TargetResponse",
    "TargetWithStatus",
    "CheckResponse",
    "ProbeResponse",
    "DeviceCreate",
    "DeviceResponse",
    "ServiceCreate",
    "ServiceResponse",
    "AlertSettingsResponse",
    "AlertSettingsUpdate",
    "AlertProfileCreate",
    "AlertProfileUpdate",
    "AlertProfileResponse",
    "AlertProfileDuplicate",
    "StatusOverview",
    "TargetSummary",
]
