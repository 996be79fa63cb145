"""Weekly availability store: lookup, weekly views and the bulk update."""

import logging
from datetime import date, time
from typing import Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.models.availability import DAYS_OF_WEEK, ProviderAvailability
from healthfirst.scheduling.blocked_days import serialize_blocked_day
from healthfirst.scheduling.conflicts import covers_whole_day, get_blocked_day
from healthfirst.scheduling.errors import NotFound, ValidationFailure
from healthfirst.scheduling.slots import day_key, format_time

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'UTC'

TIMEZONES = {
    'UTC': 'UTC',
    'America/New_York': 'Eastern Time',
    'America/Chicago': 'Central Time',
    'America/Denver': 'Mountain Time',
    'America/Los_Angeles': 'Pacific Time',
    'Europe/London': 'London',
    'Europe/Paris': 'Paris',
    'Asia/Tokyo': 'Tokyo',
    'Asia/Shanghai': 'Shanghai',
    'Australia/Sydney': 'Sydney',
}


class DayEntry(Protocol):
    day_of_week: str
    is_active: bool
    start_time: time | None
    end_time: time | None
    timezone: str | None


def get_day_availability(db: Session, provider_id: int, target_date: date) -> ProviderAvailability | None:
    return db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id,
        ProviderAvailability.day_of_week == day_key(target_date),
    ).first()


def serialize_availability_day(day: str, availability: ProviderAvailability | None) -> dict:
    return {
        'id': availability.id if availability else None,
        'day_of_week': day,
        'day_name': DAYS_OF_WEEK[day],
        'start_time': format_time(availability.start_time) if availability else None,
        'end_time': format_time(availability.end_time) if availability else None,
        'timezone': availability.timezone if availability else DEFAULT_TIMEZONE,
        'is_active': bool(availability and availability.is_active),
    }


def weekly_availability(db: Session, provider_id: int) -> list[dict]:
    rows = db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id,
    ).all()
    by_day = {row.day_of_week: row for row in rows}

    return [serialize_availability_day(day, by_day.get(day)) for day in DAYS_OF_WEEK]


def date_availability(db: Session, provider_id: int, target_date: date) -> dict:
    availability = get_day_availability(db, provider_id, target_date)
    blocked_day = get_blocked_day(db, provider_id, target_date)
    # A partial block leaves the rest of the day bookable.
    fully_blocked = blocked_day is not None and covers_whole_day(blocked_day)
    is_available = bool(availability and availability.is_active) and not fully_blocked

    return {
        'date': target_date.isoformat(),
        'day_of_week': day_key(target_date),
        'is_available': is_available,
        'start_time': format_time(availability.start_time) if is_available else None,
        'end_time': format_time(availability.end_time) if is_available else None,
        'timezone': availability.timezone if availability else DEFAULT_TIMEZONE,
        'blocked_day': serialize_blocked_day(blocked_day) if blocked_day else None,
    }


def _validate_entries(entries: list[DayEntry]) -> None:
    errors: dict[str, list[str]] = {}
    seen: set[str] = set()

    for entry in entries:
        day = entry.day_of_week
        if day not in DAYS_OF_WEEK:
            errors.setdefault('day_of_week', []).append(f'Unknown day of week: {day}.')
            continue
        if day in seen:
            errors.setdefault(day, []).append('Each day may only appear once.')
        seen.add(day)

        if not entry.is_active:
            continue
        if entry.start_time is None or entry.end_time is None:
            errors.setdefault(day, []).append(
                f'Start time and end time are required for active availability on {day}.'
            )
        elif entry.start_time >= entry.end_time:
            errors.setdefault(day, []).append('End time must be after start time.')

    missing = [day for day in DAYS_OF_WEEK if day not in seen]
    if missing:
        errors['availabilities'] = [f'Missing entries for: {", ".join(missing)}.']

    if errors:
        raise ValidationFailure('Validation failed.', errors=errors)


def bulk_update_availability(db: Session, provider_id: int, entries: Iterable[DayEntry]) -> list[dict]:
    """Replace the provider's weekly schedule with the seven given day entries.

    Inactive days are hard-deleted. Slots already booked outside a shrunken
    window are left untouched.
    """
    entries = list(entries)
    _validate_entries(entries)

    existing = {
        row.day_of_week: row
        for row in db.query(ProviderAvailability).filter(ProviderAvailability.provider_id == provider_id).all()
    }

    try:
        for entry in entries:
            current = existing.get(entry.day_of_week)

            if not entry.is_active:
                if current is not None:
                    db.delete(current)
                continue

            if current is None:
                current = ProviderAvailability(provider_id=provider_id, day_of_week=entry.day_of_week)
                db.add(current)

            current.start_time = entry.start_time
            current.end_time = entry.end_time
            current.timezone = entry.timezone or DEFAULT_TIMEZONE
            current.is_active = True

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    active_days = [entry.day_of_week for entry in entries if entry.is_active]
    logger.info('Updated weekly availability for provider %s (active: %s)', provider_id, ', '.join(active_days) or 'none')

    return weekly_availability(db, provider_id)


def delete_availability(db: Session, provider_id: int, availability_id: int) -> None:
    availability = db.query(ProviderAvailability).filter(
        ProviderAvailability.id == availability_id,
        ProviderAvailability.provider_id == provider_id,
    ).first()

    if availability is None:
        raise NotFound('Availability not found.')

    db.delete(availability)
    db.commit()
