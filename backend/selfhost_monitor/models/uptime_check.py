"""UptimeCheck model - persisted probe history."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base


class UptimeCheck(Base):
    """A saved probe result. Rows are never updated once written."""

    __tablename__ = "uptime_checks"
    __table_args__ = (
        Index("ix_uptime_checks_url_time", "service_url_id", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_url_id = Column(Integer, ForeignKey("service_urls.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    checked_at = Column(DateTime, nullable=False)
    is_up = Column(Boolean, nullable=False)
    response_time_ms = Column(Integer, nullable=True)
    status_code = Column(Integer, nullable=True)
    error = Column(String, nullable=True)

    service_url = relationship("ServiceUrl", back_populates="checks")
