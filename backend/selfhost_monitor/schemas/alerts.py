"""Alert settings and alert profile schemas for API."""
from typing import List, Optional
from pydantic import BaseModel, Field

PRIORITY_PATTERN = "^(low|medium|high|critical)$"


class AlertSettingsUpdate(BaseModel):
    """Partial update of a user's alert settings."""
    default_min_downtime: Optional[int] = Field(None, ge=0)
    default_consecutive_failures: Optional[int] = Field(None, ge=1, le=100)
    default_alert_cooldown: Optional[int] = Field(None, ge=0)
    down_alert_subject: Optional[str] = None
    down_alert_body: Optional[str] = None
    recovery_alert_subject: Optional[str] = None
    recovery_alert_body: Optional[str] = None
    send_recovery_alerts: Optional[bool] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    quiet_hours_end: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    timezone: Optional[str] = None


class AlertSettingsResponse(BaseModel):
    default_min_downtime: int
    default_consecutive_failures: int
    default_alert_cooldown: int
    down_alert_subject: str
    down_alert_body: str
    recovery_alert_subject: str
    recovery_alert_body: str
    send_recovery_alerts: bool
    quiet_hours_enabled: bool
    quiet_hours_start: str
    quiet_hours_end: str
    timezone: str


class AlertProfileBase(BaseModel):
    description: Optional[str] = None
    down_alert_subject: Optional[str] = None
    down_alert_body: Optional[str] = None
    recovery_alert_subject: Optional[str] = None
    recovery_alert_body: Optional[str] = None
    alert_on_slow_response: Optional[bool] = None
    slow_response_threshold: Optional[int] = Field(None, ge=1)
    alert_on_status_codes: Optional[List[int]] = None
    ignore_status_codes: Optional[List[int]] = None
    additional_emails: Optional[List[str]] = None
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)


class AlertProfileCreate(AlertProfileBase):
    name: str = Field(..., min_length=1, max_length=255)
    min_downtime: int = Field(0, ge=0)
    consecutive_failures: int = Field(1, ge=1, le=100)
    alert_cooldown: int = Field(15, ge=0)
    notify_on_down: bool = True
    notify_on_recovery: bool = True


class AlertProfileUpdate(AlertProfileBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    min_downtime: Optional[int] = Field(None, ge=0)
    consecutive_failures: Optional[int] = Field(None, ge=1, le=100)
    alert_cooldown: Optional[int] = Field(None, ge=0)
    notify_on_down: Optional[bool] = None
    notify_on_recovery: Optional[bool] = None


class AlertProfileResponse(AlertProfileCreate):
    id: int

    class Config:
        from_attributes = True


class AlertProfileDuplicate(BaseModel):
    new_name: str = Field(..., min_length=1, max_length=255)
