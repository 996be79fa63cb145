"""Provider-authored slots: create (with recurrence), update, delete and list."""

import logging
from datetime import date, time
from typing import Iterator

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.scheduling.conflicts import blocks_window, find_active_conflicts, get_blocked_day
from healthfirst.scheduling.errors import NotFound, SlotConflict, ValidationFailure
from healthfirst.scheduling.slots import format_time

logger = logging.getLogger(__name__)

RECURRENCE_STEPS = {
    'daily': relativedelta(days=1),
    'weekly': relativedelta(weeks=1),
    'monthly': relativedelta(months=1),
}

# Columns a recurrence clone copies from its base slot.
CLONED_FIELDS = (
    'start_time',
    'end_time',
    'timezone',
    'appointment_type',
    'slot_duration',
    'break_duration',
    'max_appointments',
    'location_type',
    'location_address',
    'room_number',
    'fee',
    'currency',
    'insurance_accepted',
    'notes',
    'special_requirements',
    'is_active',
)

UPDATABLE_FIELDS = CLONED_FIELDS + ('date',)
CLEARABLE_FIELDS = {'location_address', 'room_number', 'fee', 'notes', 'special_requirements'}


def serialize_slot(slot: AppointmentSlot) -> dict:
    return {
        'id': slot.id,
        'provider_id': slot.provider_id,
        'date': slot.date.isoformat(),
        'start_time': format_time(slot.start_time),
        'end_time': format_time(slot.end_time),
        'timezone': slot.timezone,
        'appointment_type': slot.appointment_type,
        'slot_duration': slot.slot_duration,
        'break_duration': slot.break_duration,
        'max_appointments': slot.max_appointments,
        'location_type': slot.location_type,
        'location_address': slot.location_address,
        'room_number': slot.room_number,
        'fee': float(slot.fee) if slot.fee is not None else None,
        'currency': slot.currency,
        'insurance_accepted': slot.insurance_accepted,
        'notes': slot.notes,
        'special_requirements': slot.special_requirements,
        'recurrence': slot.recurrence,
        'recurrence_end_date': slot.recurrence_end_date.isoformat() if slot.recurrence_end_date else None,
        'is_active': slot.is_active,
        'is_booked': slot.is_booked,
    }


def recurrence_dates(first_date: date, recurrence: str, end_date: date | None) -> Iterator[date]:
    """Dates after ``first_date`` up to and including ``end_date``.

    Steps are taken from ``first_date`` each time so monthly recurrence on the
    31st falls back to the month's last day without drifting.
    """
    step = RECURRENCE_STEPS.get(recurrence)
    if step is None or end_date is None:
        return

    count = 1
    while True:
        occurrence = first_date + step * count
        if occurrence > end_date:
            return
        yield occurrence
        count += 1


def _validate_window(slot_date: date, start_time: time, end_time: time) -> None:
    errors: dict[str, list[str]] = {}
    if slot_date < date.today():
        errors['date'] = ['The date must be today or later.']
    if end_time <= start_time:
        errors['end_time'] = ['End time must be after start time.']
    if errors:
        raise ValidationFailure('Validation failed.', errors=errors)


def _ensure_bookable_window(
    db: Session,
    provider_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    exclude_slot_id: int | None = None,
) -> None:
    if blocks_window(get_blocked_day(db, provider_id, slot_date), start_time, end_time):
        raise SlotConflict('This date is blocked.')

    conflicts = find_active_conflicts(db, provider_id, slot_date, start_time, end_time, exclude_slot_id)
    if conflicts:
        raise SlotConflict('Slot conflicts detected.', conflicts=[serialize_slot(slot) for slot in conflicts])


def create_slot(db: Session, provider_id: int, fields: dict) -> tuple[AppointmentSlot, list[AppointmentSlot], list[date]]:
    """Create a slot and its recurrence clones.

    Returns the slot, the clones that were created and the occurrence dates
    that were skipped because they collided with an existing active slot or
    a blocked day.
    """
    slot_date = fields['date']
    start_time = fields['start_time']
    end_time = fields['end_time']
    recurrence = fields.get('recurrence') or 'none'
    recurrence_end_date = fields.get('recurrence_end_date')

    _validate_window(slot_date, start_time, end_time)
    if recurrence_end_date is not None and recurrence_end_date <= slot_date:
        raise ValidationFailure(
            'Validation failed.',
            errors={'recurrence_end_date': ['The recurrence end date must be after the slot date.']},
        )
    _ensure_bookable_window(db, provider_id, slot_date, start_time, end_time)

    slot = AppointmentSlot(provider_id=provider_id, recurrence=recurrence, recurrence_end_date=recurrence_end_date)
    for field in UPDATABLE_FIELDS:
        if field in fields and fields[field] is not None:
            setattr(slot, field, fields[field])

    clones: list[AppointmentSlot] = []
    skipped: list[date] = []

    try:
        db.add(slot)
        db.flush()

        for occurrence in recurrence_dates(slot_date, recurrence, recurrence_end_date):
            blocked = blocks_window(get_blocked_day(db, provider_id, occurrence), start_time, end_time)
            if blocked or find_active_conflicts(db, provider_id, occurrence, start_time, end_time):
                skipped.append(occurrence)
                continue

            clone = AppointmentSlot(provider_id=provider_id, date=occurrence, recurrence='none')
            for field in CLONED_FIELDS:
                setattr(clone, field, getattr(slot, field))
            db.add(clone)
            db.flush()
            clones.append(clone)

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise SlotConflict('An active slot already covers this window.') from exc
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(slot)
    if skipped:
        logger.warning(
            'Provider %s: skipped %d conflicting recurrence dates for slot %s',
            provider_id,
            len(skipped),
            slot.id,
        )
    logger.info('Provider %s created slot %s with %d recurrences', provider_id, slot.id, len(clones))

    return slot, clones, skipped


def get_slot_or_404(db: Session, provider_id: int, slot_id: int) -> AppointmentSlot:
    slot = db.query(AppointmentSlot).filter(
        AppointmentSlot.id == slot_id,
        AppointmentSlot.provider_id == provider_id,
    ).first()
    if slot is None:
        raise NotFound('Appointment slot not found.')
    return slot


def update_slot(db: Session, provider_id: int, slot_id: int, changes: dict) -> AppointmentSlot:
    slot = get_slot_or_404(db, provider_id, slot_id)
    if slot.is_booked:
        raise SlotConflict('Cannot update a booked appointment slot.')

    slot_date = changes.get('date') or slot.date
    start_time = changes.get('start_time') or slot.start_time
    end_time = changes.get('end_time') or slot.end_time
    is_active = slot.is_active if changes.get('is_active') is None else changes['is_active']

    moved = bool({'date', 'start_time', 'end_time'} & changes.keys())
    if moved:
        _validate_window(slot_date, start_time, end_time)
    # Reactivation claims the window again, so it must not overlap active slots.
    if is_active and (moved or 'is_active' in changes):
        _ensure_bookable_window(db, provider_id, slot_date, start_time, end_time, exclude_slot_id=slot.id)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if value is not None or field in CLEARABLE_FIELDS:
            setattr(slot, field, value)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise SlotConflict('An active slot already covers this window.') from exc
    db.refresh(slot)
    return slot


def delete_slot(db: Session, provider_id: int, slot_id: int) -> None:
    slot = get_slot_or_404(db, provider_id, slot_id)
    if slot.is_booked:
        raise SlotConflict('Cannot delete a booked appointment slot.')

    db.delete(slot)
    db.commit()


def list_provider_slots(
    db: Session,
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    slot_status: str | None = None,
) -> list[AppointmentSlot]:
    query = db.query(AppointmentSlot).filter(AppointmentSlot.provider_id == provider_id)

    if start_date is not None and end_date is not None:
        query = query.filter(AppointmentSlot.date >= start_date, AppointmentSlot.date <= end_date)

    if slot_status == 'available':
        query = query.filter(AppointmentSlot.is_booked.is_(False))
    elif slot_status == 'booked':
        query = query.filter(AppointmentSlot.is_booked.is_(True))

    return query.order_by(AppointmentSlot.date.asc(), AppointmentSlot.start_time.asc()).all()


def list_available_slots(
    db: Session,
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[AppointmentSlot]:
    """Explicit slots a patient can book: active and not yet booked."""
    query = db.query(AppointmentSlot).filter(
        AppointmentSlot.provider_id == provider_id,
        AppointmentSlot.is_active.is_(True),
        AppointmentSlot.is_booked.is_(False),
    )
    if start_date is not None and end_date is not None:
        query = query.filter(AppointmentSlot.date >= start_date, AppointmentSlot.date <= end_date)

    return query.order_by(AppointmentSlot.date.asc(), AppointmentSlot.start_time.asc()).all()
