"""ServiceUrl model - a single monitored URL and its runtime check state."""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class ServiceUrl(Base):
    """A monitored target.

    Configuration columns are edited through the API; the runtime columns at
    the bottom are written only by the target's own check pipeline.
    """

    __tablename__ = "service_urls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    label = Column(String, nullable=False)
    url = Column(String, nullable=False)  # Encrypted when a key is configured
    ping_interval = Column(Integer, nullable=True)  # seconds
    save_interval = Column(Integer, nullable=True)  # minutes
    exclude_from_uptime = Column(Boolean, default=False)

    # Email alert settings
    email_alerts_enabled = Column(Boolean, default=False)
    notify_on_down = Column(Boolean, default=True)
    notify_on_recovery = Column(Boolean, default=True)
    min_downtime_duration = Column(Integer, nullable=True)  # seconds
    consecutive_failures = Column(Integer, nullable=True)
    alert_cooldown = Column(Integer, nullable=True)  # minutes
    additional_emails = Column(JSON, nullable=True)

    # Alert conditions
    alert_on_slow_response = Column(Boolean, default=False)
    slow_response_threshold = Column(Integer, nullable=True)  # ms
    alert_on_status_codes = Column(JSON, nullable=True)
    ignore_status_codes = Column(JSON, nullable=True)

    # Per-URL templates, used when use_custom_alerts is set
    use_custom_alerts = Column(Boolean, default=False)
    custom_down_alert_subject = Column(String, nullable=True)
    custom_down_alert_body = Column(String, nullable=True)
    custom_recovery_alert_subject = Column(String, nullable=True)
    custom_recovery_alert_body = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    # Runtime state
    last_check_at = Column(DateTime, nullable=True)
    next_check_at = Column(DateTime, nullable=True, index=True)
    last_save_at = Column(DateTime, nullable=True)
    last_probe_up = Column(Boolean, nullable=True)
    current_failure_count = Column(Integer, default=0)
    first_failure_at = Column(DateTime, nullable=True)
    last_alert_at = Column(DateTime, nullable=True)
    recovery_pending = Column(Boolean, default=False)  # recovery held back by quiet hours

    service = relationship("Service", back_populates="urls")
    checks = relationship("UptimeCheck", back_populates="service_url", cascade="all, delete-orphan")
    alerts = relationship("AlertLog", back_populates="service_url", cascade="all, delete-orphan")
