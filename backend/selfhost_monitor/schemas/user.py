"""User schemas for API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Schema for registering a user."""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    password: str = Field(..., min_length=8)


class UserLogin(BaseModel):
    name: str
    password: str


class NotificationPreferences(BaseModel):
    """Where and whether alert emails are sent."""
    notification_email: Optional[str] = None
    email_notifications_enabled: Optional[bool] = None


class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    notification_email: Optional[str] = None
    email_notifications_enabled: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
