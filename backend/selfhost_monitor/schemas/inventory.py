"""Device and service schemas for API."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from .target import TargetWithStatus


class DeviceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)


class DeviceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    """Schema for creating a service on a device."""
    name: str = Field(..., min_length=1, max_length=255)
    device_id: int
    notes: Optional[str] = None
    icon_url: Optional[str] = None
    use_custom_alerts: bool = False
    custom_down_alert_subject: Optional[str] = None
    custom_down_alert_body: Optional[str] = None
    custom_recovery_alert_subject: Optional[str] = None
    custom_recovery_alert_body: Optional[str] = None
    alert_priority: Optional[str] = Field(None, pattern="^(low|medium|high|critical)$")


class ServiceResponse(BaseModel):
    id: int
    name: str
    device_id: Optional[int] = None
    device_name: Optional[str] = None
    notes: Optional[str] = None
    icon_url: Optional[str] = None
    use_custom_alerts: bool = False
    alert_priority: Optional[str] = None
    urls: List[TargetWithStatus] = []
