"""Alert model - log of sent alerts."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class AlertLog(Base):
    """Record of an alert dispatch attempt."""

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_url_id = Column(Integer, ForeignKey("service_urls.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(String, nullable=False)  # down, recovery, slow
    channel = Column(String, default="email")
    sent_at = Column(DateTime, default=utcnow)
    payload = Column(String, nullable=True)  # JSON summary of the email
    success = Column(Boolean, nullable=False)
    error = Column(String, nullable=True)

    service_url = relationship("ServiceUrl", back_populates="alerts")
