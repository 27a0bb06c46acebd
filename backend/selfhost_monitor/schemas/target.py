"""Monitored URL schemas for API."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class TargetAlertFields(BaseModel):
    """Alert configuration shared by create and update."""
    email_alerts_enabled: Optional[bool] = None
    notify_on_down: Optional[bool] = None
    notify_on_recovery: Optional[bool] = None
    min_downtime_duration: Optional[int] = Field(None, ge=0)  # seconds
    consecutive_failures: Optional[int] = Field(None, ge=1, le=100)
    alert_cooldown: Optional[int] = Field(None, ge=0)  # minutes
    additional_emails: Optional[List[str]] = None
    alert_on_slow_response: Optional[bool] = None
    slow_response_threshold: Optional[int] = Field(None, ge=1)  # ms
    alert_on_status_codes: Optional[List[int]] = None
    ignore_status_codes: Optional[List[int]] = None
    use_custom_alerts: Optional[bool] = None
    custom_down_alert_subject: Optional[str] = None
    custom_down_alert_body: Optional[str] = None
    custom_recovery_alert_subject: Optional[str] = None
    custom_recovery_alert_body: Optional[str] = None


class TargetCreate(TargetAlertFields):
    """Schema for adding a URL to a service."""
    service_id: int
    label: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    ping_interval: Optional[int] = Field(None, ge=5, le=86400)  # seconds
    save_interval: Optional[int] = Field(None, ge=1, le=10080)  # minutes
    exclude_from_uptime: bool = False


class TargetUpdate(TargetAlertFields):
    """Schema for updating a URL; unset fields are left alone."""
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    url: Optional[str] = Field(None, min_length=1)
    ping_interval: Optional[int] = Field(None, ge=5, le=86400)
    save_interval: Optional[int] = Field(None, ge=1, le=10080)
    exclude_from_uptime: Optional[bool] = None


class TargetResponse(BaseModel):
    id: int
    service_id: int
    label: str
    url: str
    ping_interval: Optional[int] = None
    save_interval: Optional[int] = None
    exclude_from_uptime: bool = False
    email_alerts_enabled: bool = False
    notify_on_down: Optional[bool] = None
    notify_on_recovery: Optional[bool] = None
    min_downtime_duration: Optional[int] = None
    consecutive_failures: Optional[int] = None
    alert_cooldown: Optional[int] = None
    use_custom_alerts: bool = False
    last_check_at: Optional[datetime] = None
    current_failure_count: int = 0
    last_alert_at: Optional[datetime] = None


class TargetWithStatus(BaseModel):
    """A URL with its latest saved check, as shown on the dashboard."""
    id: int
    label: str
    url: str
    is_up: Optional[bool] = None
    last_check: Optional[datetime] = None
    response_time_ms: Optional[int] = None
    exclude_from_uptime: bool = False


class CheckResponse(BaseModel):
    """A saved uptime check."""
    id: int
    checked_at: datetime
    is_up: bool
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class ProbeResponse(BaseModel):
    """Result of an on-demand probe; not saved to history."""
    up: bool
    latency_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None
