"""Service model - an application reachable through one or more URLs."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class Service(Base):
    """A monitored application running on a device."""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=True)
    name = Column(String, nullable=False)
    notes = Column(String, nullable=True)  # Encrypted when a key is configured
    icon_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Service-wide alert templates
    use_custom_alerts = Column(Boolean, default=False)
    custom_down_alert_subject = Column(String, nullable=True)
    custom_down_alert_body = Column(String, nullable=True)
    custom_recovery_alert_subject = Column(String, nullable=True)
    custom_recovery_alert_body = Column(String, nullable=True)
    alert_priority = Column(String, nullable=True)  # low, medium, high, critical

    device = relationship("Device", back_populates="services")
    urls = relationship("ServiceUrl", back_populates="service", cascade="all, delete-orphan")
