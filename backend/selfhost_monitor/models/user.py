"""User model - account owning devices, services and targets."""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class User(Base):
    """A dashboard user and their notification preferences."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True, unique=True)
    password_hash = Column(String, nullable=True)  # hex salt:key
    created_at = Column(DateTime, default=utcnow)

    # Email notification preferences
    notification_email = Column(String, nullable=True)
    email_notifications_enabled = Column(Boolean, default=False)

    devices = relationship("Device", back_populates="user", cascade="all, delete-orphan")
    alert_settings = relationship(
        "AlertSettings", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    alert_profiles = relationship("AlertProfile", back_populates="user", cascade="all, delete-orphan")
