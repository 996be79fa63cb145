"""Appointment slot model definitions."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    text,
)

from healthfirst.database import Base

APPOINTMENT_TYPES = {
    'consultation': 'Consultation',
    'follow_up': 'Follow-up',
    'emergency': 'Emergency',
    'routine_checkup': 'Routine Checkup',
    'specialist_consultation': 'Specialist Consultation',
}

LOCATION_TYPES = {
    'in_person': 'In Person',
    'virtual': 'Virtual',
    'home_visit': 'Home Visit',
}

RECURRENCE_OPTIONS = {
    'none': 'No Recurrence',
    'daily': 'Daily',
    'weekly': 'Weekly',
    'monthly': 'Monthly',
}


class AppointmentSlot(Base):
    """A dated, timed bookable unit, authored by a provider or materialized on booking."""
    __tablename__ = "appointment_slots"
    # Only active slots own their window; deactivated rows may share it.
    __table_args__ = (
        Index(
            'uq_slot_provider_active_window',
            'provider_id',
            'date',
            'start_time',
            'end_time',
            unique=True,
            sqlite_where=text('is_active = 1'),
            postgresql_where=text('is_active'),
        ),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    timezone = Column(String(50), nullable=False, default='UTC')
    appointment_type = Column(String, nullable=False)
    slot_duration = Column(Integer, nullable=False)
    break_duration = Column(Integer, nullable=False, default=0)
    max_appointments = Column(Integer, nullable=False, default=1)
    location_type = Column(String, nullable=False)
    location_address = Column(String(255))
    room_number = Column(String(50))
    fee = Column(Numeric(10, 2))
    currency = Column(String(3), nullable=False, default='USD')
    insurance_accepted = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    special_requirements = Column(JSON)
    recurrence = Column(String, nullable=False, default='none')
    recurrence_end_date = Column(Date)
    is_active = Column(Boolean, nullable=False, default=True)
    is_booked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
