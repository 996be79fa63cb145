"""Appointment listings, status transitions and provider statistics."""

import logging
from collections import Counter
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from healthfirst.models.appointment import (
    APPOINTMENT_STATUSES,
    STATUS_COMPLETED,
    STATUS_SCHEDULED,
    Appointment,
)
from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.scheduling.errors import NotFound, ValidationFailure
from healthfirst.scheduling.slots import format_time

logger = logging.getLogger(__name__)


def serialize_appointment(appointment: Appointment) -> dict:
    slot = appointment.slot
    patient = appointment.patient

    return {
        'id': appointment.id,
        'slot_id': appointment.slot_id,
        'provider_id': appointment.provider_id,
        'patient_id': appointment.patient_id,
        'status': appointment.status,
        'notes': appointment.notes,
        'created_at': appointment.created_at.isoformat() if appointment.created_at else None,
        'slot': {
            'id': slot.id,
            'date': slot.date.isoformat(),
            'start_time': format_time(slot.start_time),
            'end_time': format_time(slot.end_time),
            'timezone': slot.timezone,
            'appointment_type': slot.appointment_type,
            'location_type': slot.location_type,
        } if slot else None,
        'patient': {
            'id': patient.id,
            'patient_code': patient.patient_code,
            'name': patient.full_name,
            'email': patient.email,
        } if patient else None,
    }


def list_provider_appointments(
    db: Session,
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    appointment_status: str | None = None,
    appointment_type: str | None = None,
) -> dict[str, list[Appointment]]:
    """Provider appointments grouped by slot date, each day sorted by start time."""
    query = db.query(Appointment).join(AppointmentSlot, Appointment.slot_id == AppointmentSlot.id).filter(
        Appointment.provider_id == provider_id,
    )

    if start_date is not None and end_date is not None:
        query = query.filter(AppointmentSlot.date >= start_date, AppointmentSlot.date <= end_date)
    if appointment_status:
        query = query.filter(Appointment.status == appointment_status)
    if appointment_type:
        query = query.filter(AppointmentSlot.appointment_type == appointment_type)

    appointments = query.order_by(AppointmentSlot.date.asc(), AppointmentSlot.start_time.asc()).all()

    grouped: dict[str, list[Appointment]] = {}
    for appointment in appointments:
        grouped.setdefault(appointment.slot.date.isoformat(), []).append(appointment)
    return grouped


def list_patient_appointments(db: Session, patient_id: int) -> list[Appointment]:
    return db.query(Appointment).join(AppointmentSlot, Appointment.slot_id == AppointmentSlot.id).filter(
        Appointment.patient_id == patient_id,
    ).order_by(AppointmentSlot.date.asc(), AppointmentSlot.start_time.asc()).all()


def update_appointment_status(
    db: Session,
    provider_id: int,
    appointment_id: int,
    new_status: str,
    notes: str | None = None,
) -> Appointment:
    if new_status not in APPOINTMENT_STATUSES:
        raise ValidationFailure('Validation failed.', errors={'status': ['Invalid appointment status.']})

    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.provider_id == provider_id,
    ).first()
    if appointment is None:
        raise NotFound('Appointment not found.')

    previous = appointment.status
    appointment.status = new_status
    if notes is not None:
        appointment.notes = notes

    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s moved from %s to %s', appointment.id, previous, new_status)
    return appointment


def appointment_statistics(db: Session, provider_id: int, today: date | None = None) -> dict:
    today = today or date.today()
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)
    week_end = week_start + timedelta(days=7)
    month_end = month_start + relativedelta(months=1)

    rows = db.query(Appointment.status, AppointmentSlot.date).join(
        AppointmentSlot, Appointment.slot_id == AppointmentSlot.id,
    ).filter(Appointment.provider_id == provider_id).all()

    todays = [appointment_status for appointment_status, slot_date in rows if slot_date == today]

    return {
        'today': {
            'total': len(todays),
            'scheduled': todays.count(STATUS_SCHEDULED),
            'completed': todays.count(STATUS_COMPLETED),
        },
        'this_week': {
            'total': sum(1 for _, slot_date in rows if week_start <= slot_date < week_end),
        },
        'this_month': {
            'total': sum(1 for _, slot_date in rows if month_start <= slot_date < month_end),
        },
        'by_status': dict(Counter(appointment_status for appointment_status, _ in rows)),
    }
