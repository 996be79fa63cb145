"""Booking transaction: reserve a slot and create its appointment atomically.

Both entry points take the (provider, date) booking lock before reading the
slot state they act on, re-read the rows ``FOR UPDATE`` and commit the
appointment together with ``is_booked``. Validation and conflict errors keep
their precise message; anything else raised inside the locked section rolls
back and surfaces as :class:`BookingFailed`.
"""

import logging
from datetime import date, time
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from healthfirst.models.appointment import STATUS_SCHEDULED, Appointment
from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.models.provider import Provider
from healthfirst.scheduling.availability import DEFAULT_TIMEZONE, get_day_availability
from healthfirst.scheduling.conflicts import blocks_window, find_booked_conflict, get_blocked_day
from healthfirst.scheduling.errors import (
    BookingFailed,
    NotFound,
    SchedulingError,
    SlotConflict,
    ValidationFailure,
)
from healthfirst.scheduling.locks import booking_locks
from healthfirst.scheduling.slots import minutes_between

logger = logging.getLogger(__name__)

MATERIALIZED_APPOINTMENT_TYPE = 'consultation'
MATERIALIZED_LOCATION_TYPE = 'virtual'


def get_bookable_provider(db: Session, provider_id: int) -> Provider:
    provider = db.get(Provider, provider_id)
    if provider is None or not provider.is_approved:
        raise NotFound('Provider not found.')
    return provider


def _create_appointment(db: Session, slot: AppointmentSlot, patient_id: int, notes: str | None) -> Appointment:
    appointment = Appointment(
        slot_id=slot.id,
        provider_id=slot.provider_id,
        patient_id=patient_id,
        status=STATUS_SCHEDULED,
        notes=notes,
    )
    db.add(appointment)
    slot.is_booked = True
    return appointment


def _run_locked(db: Session, provider_id: int, slot_date: date, reserve: Callable[[], Appointment]) -> Appointment:
    with booking_locks.hold(provider_id, slot_date):
        try:
            appointment = reserve()
            db.commit()
        except SchedulingError:
            db.rollback()
            raise
        except IntegrityError as exc:
            # Another worker won the slot_id or active window race.
            db.rollback()
            logger.warning('Booking race lost for provider %s on %s', provider_id, slot_date)
            raise SlotConflict('Slot is already booked.') from exc
        except Exception as exc:
            db.rollback()
            logger.exception('Booking failed for provider %s on %s; rolled back', provider_id, slot_date)
            raise BookingFailed() from exc

    db.refresh(appointment)
    logger.info(
        'Booked appointment %s on slot %s for patient %s',
        appointment.id,
        appointment.slot_id,
        appointment.patient_id,
    )
    return appointment


def book_slot(db: Session, patient_id: int, slot_id: int, notes: str | None = None) -> Appointment:
    """Book an existing slot by id."""
    slot = db.get(AppointmentSlot, slot_id)
    if slot is None or not slot.is_active:
        raise NotFound('Slot not found or inactive.')
    get_bookable_provider(db, slot.provider_id)

    def reserve() -> Appointment:
        locked = db.query(AppointmentSlot).filter(
            AppointmentSlot.id == slot_id,
            AppointmentSlot.is_active.is_(True),
        ).with_for_update().populate_existing().first()

        if locked is None:
            raise NotFound('Slot not found or inactive.')
        if locked.is_booked:
            raise SlotConflict('Slot is already booked.')
        blocked_day = get_blocked_day(db, locked.provider_id, locked.date)
        if blocks_window(blocked_day, locked.start_time, locked.end_time):
            raise SlotConflict('Provider is unavailable at the selected time.')

        return _create_appointment(db, locked, patient_id, notes)

    return _run_locked(db, slot.provider_id, slot.date, reserve)


def book_by_time(
    db: Session,
    patient_id: int,
    provider_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    notes: str | None = None,
) -> Appointment:
    """Book a window inside the provider's availability, creating its slot if absent.

    The slot is found or created under the lock, keyed by
    (provider_id, date, start_time, end_time), so repeating the call never
    produces a second slot for the same window.
    """
    errors: dict[str, list[str]] = {}
    if end_time <= start_time:
        errors['end_time'] = ['End time must be after start time.']
    if slot_date < date.today():
        errors['date'] = ['The date must be today or later.']
    if errors:
        raise ValidationFailure('Validation failed.', errors=errors)

    get_bookable_provider(db, provider_id)

    availability = get_day_availability(db, provider_id, slot_date)
    if availability is None or not availability.is_active:
        raise ValidationFailure('Provider not available on selected date.')
    if start_time < availability.start_time or end_time > availability.end_time:
        raise ValidationFailure('Selected time outside provider availability.')

    def reserve() -> Appointment:
        if blocks_window(get_blocked_day(db, provider_id, slot_date), start_time, end_time):
            raise SlotConflict('Provider is unavailable at the selected time.')

        day_slots = db.query(AppointmentSlot).filter(
            AppointmentSlot.provider_id == provider_id,
            AppointmentSlot.date == slot_date,
        ).with_for_update().populate_existing().all()

        matches = [s for s in day_slots if s.start_time == start_time and s.end_time == end_time]
        # A deactivated twin may share the window with the live slot.
        slot = next((s for s in matches if s.is_active), matches[0] if matches else None)
        if slot is not None and slot.is_booked:
            raise SlotConflict('Slot is already booked.')
        if slot is not None and not slot.is_active:
            raise SlotConflict('Slot is not available.')

        others = [s for s in day_slots if s is not slot]
        if find_booked_conflict(others, start_time, end_time):
            raise SlotConflict('Selected time overlaps a booked appointment.')

        if slot is None:
            slot = AppointmentSlot(
                provider_id=provider_id,
                date=slot_date,
                start_time=start_time,
                end_time=end_time,
                timezone=availability.timezone or DEFAULT_TIMEZONE,
                appointment_type=MATERIALIZED_APPOINTMENT_TYPE,
                slot_duration=minutes_between(start_time, end_time),
                break_duration=0,
                max_appointments=1,
                location_type=MATERIALIZED_LOCATION_TYPE,
                is_active=True,
                is_booked=False,
            )
            db.add(slot)
            db.flush()
            logger.info('Materialized slot %s for provider %s on %s', slot.id, provider_id, slot_date)

        return _create_appointment(db, slot, patient_id, notes)

    return _run_locked(db, provider_id, slot_date, reserve)
