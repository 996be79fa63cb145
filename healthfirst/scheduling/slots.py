"""Expands a weekly availability window into fixed-length candidate windows."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator

from healthfirst.core import config
from healthfirst.models.availability import DAYS_OF_WEEK, ProviderAvailability
from healthfirst.scheduling.errors import ValidationFailure

DAY_KEYS = tuple(DAYS_OF_WEEK)


@dataclass(frozen=True)
class TimeWindow:
    date: date
    start_time: time
    end_time: time
    timezone: str = 'UTC'

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)

    def as_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'start_time': format_time(self.start_time),
            'end_time': format_time(self.end_time),
            'timezone': self.timezone,
        }


def day_key(target_date: date) -> str:
    return DAY_KEYS[target_date.weekday()]


def format_time(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime('%H:%M')


def minutes_between(start: time, end: time) -> int:
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return int(delta.total_seconds() // 60)


def validate_slot_duration(slot_duration: int) -> int:
    lower = config.MIN_GENERATED_SLOT_DURATION_MINUTES
    upper = config.MAX_GENERATED_SLOT_DURATION_MINUTES
    if not lower <= slot_duration <= upper:
        raise ValidationFailure(
            'Validation failed.',
            errors={'slot_duration': [f'Slot duration must be between {lower} and {upper} minutes.']},
        )
    return slot_duration


def generate_windows(
    availability: ProviderAvailability | None,
    target_date: date,
    slot_duration: int = config.DEFAULT_SLOT_DURATION_MINUTES,
) -> Iterator[TimeWindow]:
    """Yield back-to-back windows of ``slot_duration`` minutes inside the availability.

    Nothing is yielded when the availability is missing, inactive, belongs to
    another weekday or has ``end_time <= start_time``. A trailing remainder
    shorter than ``slot_duration`` is left unused rather than clipped.
    """
    validate_slot_duration(slot_duration)
    return _iterate_windows(availability, target_date, slot_duration)


def _iterate_windows(
    availability: ProviderAvailability | None,
    target_date: date,
    slot_duration: int,
) -> Iterator[TimeWindow]:
    if availability is None or not availability.is_active:
        return
    if availability.day_of_week != day_key(target_date):
        return

    available_start = datetime.combine(target_date, availability.start_time)
    available_end = datetime.combine(target_date, availability.end_time)
    if available_end <= available_start:
        return

    step = timedelta(minutes=slot_duration)
    timezone = availability.timezone or 'UTC'
    current = available_start

    while current < available_end:
        window_end = current + step
        if window_end > available_end:
            break

        yield TimeWindow(
            date=target_date,
            start_time=current.time(),
            end_time=window_end.time(),
            timezone=timezone,
        )
        current = window_end
