"""Weekly provider availability definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Time, UniqueConstraint

from healthfirst.database import Base

DAYS_OF_WEEK = {
    'monday': 'Monday',
    'tuesday': 'Tuesday',
    'wednesday': 'Wednesday',
    'thursday': 'Thursday',
    'friday': 'Friday',
    'saturday': 'Saturday',
    'sunday': 'Sunday',
}


class ProviderAvailability(Base):
    """One recurring bookable window per provider and weekday."""
    __tablename__ = "provider_availabilities"
    __table_args__ = (
        UniqueConstraint('provider_id', 'day_of_week', name='uq_availability_provider_day'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(String, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    timezone = Column(String(50), nullable=False, default='UTC')
    is_active = Column(Boolean, nullable=False, default=True)
