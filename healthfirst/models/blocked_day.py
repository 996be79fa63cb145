"""Blocked day model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Time, UniqueConstraint

from healthfirst.database import Base


class BlockedDay(Base):
    """A provider-declared exception for one calendar date."""
    __tablename__ = "blocked_days"
    __table_args__ = (
        UniqueConstraint('provider_id', 'date', name='uq_blocked_day_provider_date'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    reason = Column(String(255))
    is_full_day = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
