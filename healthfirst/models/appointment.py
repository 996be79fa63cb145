"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from healthfirst.database import Base
from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.models.patient import Patient

STATUS_SCHEDULED = 'scheduled'
STATUS_ARRIVED = 'arrived'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_CANCELED = 'canceled'
STATUS_NO_SHOW = 'no_show'
STATUS_RESCHEDULED = 'rescheduled'

APPOINTMENT_STATUSES = (
    STATUS_SCHEDULED,
    STATUS_ARRIVED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELED,
    STATUS_NO_SHOW,
    STATUS_RESCHEDULED,
)


class Appointment(Base):
    """A patient's reservation of exactly one slot."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    slot_id = Column(
        Integer,
        ForeignKey("appointment_slots.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False, default=STATUS_SCHEDULED)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    slot = relationship(AppointmentSlot, lazy='joined')
    patient = relationship(Patient)
