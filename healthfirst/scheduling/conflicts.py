"""Overlap detection between candidate windows, persisted slots and blocked days."""

from datetime import date, time
from typing import Iterable

from sqlalchemy.orm import Session

from healthfirst.core import config
from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.models.blocked_day import BlockedDay
from healthfirst.scheduling.slots import TimeWindow


def windows_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return not (end_a <= start_b or start_a >= end_b)


def slot_overlaps(slot: AppointmentSlot, start_time: time, end_time: time) -> bool:
    return windows_overlap(slot.start_time, slot.end_time, start_time, end_time)


def load_day_slots(db: Session, provider_id: int, slot_date: date) -> list[AppointmentSlot]:
    return db.query(AppointmentSlot).filter(
        AppointmentSlot.provider_id == provider_id,
        AppointmentSlot.date == slot_date,
    ).order_by(AppointmentSlot.start_time.asc()).all()


def find_booked_conflict(
    slots: Iterable[AppointmentSlot],
    start_time: time,
    end_time: time,
) -> AppointmentSlot | None:
    for slot in slots:
        if slot.is_booked and slot_overlaps(slot, start_time, end_time):
            return slot
    return None


def find_active_conflicts(
    db: Session,
    provider_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    exclude_slot_id: int | None = None,
) -> list[AppointmentSlot]:
    """Active slots of the provider on ``slot_date`` overlapping the window, booked or not."""
    query = db.query(AppointmentSlot).filter(
        AppointmentSlot.provider_id == provider_id,
        AppointmentSlot.date == slot_date,
        AppointmentSlot.is_active.is_(True),
        AppointmentSlot.start_time < end_time,
        AppointmentSlot.end_time > start_time,
    )
    if exclude_slot_id is not None:
        query = query.filter(AppointmentSlot.id != exclude_slot_id)

    return query.order_by(AppointmentSlot.start_time.asc()).all()


def get_blocked_day(db: Session, provider_id: int, blocked_date: date) -> BlockedDay | None:
    if not config.ENFORCE_BLOCKED_DAYS:
        return None

    return db.query(BlockedDay).filter(
        BlockedDay.provider_id == provider_id,
        BlockedDay.date == blocked_date,
    ).first()


def covers_whole_day(blocked_day: BlockedDay) -> bool:
    return blocked_day.is_full_day or blocked_day.start_time is None or blocked_day.end_time is None


def blocks_window(blocked_day: BlockedDay | None, start_time: time, end_time: time) -> bool:
    if blocked_day is None:
        return False
    if covers_whole_day(blocked_day):
        return True
    return windows_overlap(blocked_day.start_time, blocked_day.end_time, start_time, end_time)


def resolve_candidate_windows(
    windows: Iterable[TimeWindow],
    existing_slots: list[AppointmentSlot],
    blocked_day: BlockedDay | None = None,
) -> list[dict]:
    """Drop windows that hit a booked slot or a block.

    Overlapping slots that are not booked are tolerated; the first such slot
    is reported as ``existing_slot_id`` so a client can book it directly.
    """
    available: list[dict] = []

    for window in windows:
        if blocks_window(blocked_day, window.start_time, window.end_time):
            continue
        if find_booked_conflict(existing_slots, window.start_time, window.end_time):
            continue

        overlapping = next(
            (slot for slot in existing_slots if slot_overlaps(slot, window.start_time, window.end_time)),
            None,
        )
        available.append({
            **window.as_dict(),
            'is_booked': False,
            'existing_slot_id': overlapping.id if overlapping else None,
        })

    return available
