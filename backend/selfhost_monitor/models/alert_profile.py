"""AlertProfile model - reusable bundles of alert thresholds."""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class AlertProfile(Base):
    """Named alert configuration that can be copied onto targets."""

    __tablename__ = "alert_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)  # e.g. "Critical Production"
    description = Column(String, nullable=True)

    min_downtime = Column(Integer, nullable=False, default=0)  # seconds
    consecutive_failures = Column(Integer, nullable=False, default=1)
    alert_cooldown = Column(Integer, nullable=False, default=15)  # minutes

    down_alert_subject = Column(String, nullable=True)
    down_alert_body = Column(String, nullable=True)
    recovery_alert_subject = Column(String, nullable=True)
    recovery_alert_body = Column(String, nullable=True)

    alert_on_slow_response = Column(Boolean, default=False)
    slow_response_threshold = Column(Integer, nullable=True)
    alert_on_status_codes = Column(JSON, nullable=True)
    ignore_status_codes = Column(JSON, nullable=True)

    notify_on_down = Column(Boolean, nullable=False, default=True)
    notify_on_recovery = Column(Boolean, nullable=False, default=True)
    additional_emails = Column(JSON, nullable=True)
    priority = Column(String, nullable=True)  # low, medium, high, critical

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="alert_profiles")
