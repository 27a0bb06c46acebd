"""AlertSettings model - per-user alert defaults and email templates."""
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


DEFAULT_DOWN_SUBJECT = "Service Down: {{service_name}} - {{url_label}}"
DEFAULT_RECOVERY_SUBJECT = "Service Recovered: {{service_name}} - {{url_label}}"
DEFAULT_SLOW_SUBJECT = "Slow Response: {{service_name}} - {{url_label}}"

DEFAULT_DOWN_BODY = "\n".join([
    "SelfHost Monitor DOWN Report",
    "=" * 40,
    "",
    "Hello {{recipient_name}},",
    "",
    "Service: {{service_name}}",
    "URL: {{url_label}}",
    "Time: {{timestamp}}",
    "{{#if status_code}}Status Code: {{status_code}}{{/if}}",
    "{{#if error_message}}Error: {{error_message}}{{/if}}",
    "",
    "Please check your service as soon as possible.",
    "",
    "--",
    "SelfHost Monitor",
])

DEFAULT_RECOVERY_BODY = "\n".join([
    "SelfHost Monitor RECOVERY Report",
    "=" * 40,
    "",
    "Hello {{recipient_name}},",
    "",
    "Service: {{service_name}}",
    "URL: {{url_label}}",
    "Recovery Time: {{timestamp}}",
    "{{#if response_time}}Response Time: {{response_time}}ms{{/if}}",
    "{{#if status_code}}Status Code: {{status_code}}{{/if}}",
    "{{#if downtime_duration}}Total Downtime: {{downtime_duration}}{{/if}}",
    "",
    "--",
    "SelfHost Monitor",
])

DEFAULT_SLOW_BODY = "\n".join([
    "SelfHost Monitor SLOW RESPONSE Report",
    "=" * 40,
    "",
    "Hello {{recipient_name}},",
    "",
    "Service: {{service_name}}",
    "URL: {{url_label}}",
    "Time: {{timestamp}}",
    "Response Time: {{response_time}}ms",
    "",
    "--",
    "SelfHost Monitor",
])


class AlertSettings(Base):
    """Per-user alert defaults, templates and quiet hours."""

    __tablename__ = "alert_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Defaults for targets that leave thresholds unset
    default_min_downtime = Column(Integer, nullable=True)  # seconds
    default_consecutive_failures = Column(Integer, nullable=True)
    default_alert_cooldown = Column(Integer, nullable=True)  # minutes

    down_alert_subject = Column(String, nullable=True)
    down_alert_body = Column(String, nullable=True)
    recovery_alert_subject = Column(String, nullable=True)
    recovery_alert_body = Column(String, nullable=True)

    send_recovery_alerts = Column(Boolean, default=True)

    quiet_hours_enabled = Column(Boolean, default=False)
    quiet_hours_start = Column(String, default="22:00")  # HH:MM
    quiet_hours_end = Column(String, default="08:00")  # HH:MM
    timezone = Column(String, default="UTC")

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="alert_settings")


# Values reported for users that never saved settings
DEFAULT_ALERT_SETTINGS = {
    "default_min_downtime": 0,
    "default_consecutive_failures": 1,
    "default_alert_cooldown": 15,
    "down_alert_subject": DEFAULT_DOWN_SUBJECT,
    "down_alert_body": DEFAULT_DOWN_BODY,
    "recovery_alert_subject": DEFAULT_RECOVERY_SUBJECT,
    "recovery_alert_body": DEFAULT_RECOVERY_BODY,
    "send_recovery_alerts": True,
    "quiet_hours_enabled": False,
    "quiet_hours_start": "22:00",
    "quiet_hours_end": "08:00",
    "timezone": "UTC",
}
