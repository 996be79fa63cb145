from datetime import time

import pytest

from healthfirst.core import config
from healthfirst.models.appointment_slot import AppointmentSlot
from healthfirst.models.blocked_day import BlockedDay
from healthfirst.scheduling.conflicts import (
    blocks_window,
    find_active_conflicts,
    get_blocked_day,
    resolve_candidate_windows,
    windows_overlap,
)
from healthfirst.scheduling.slots import TimeWindow


def make_slot(db, provider, slot_date, start: time, end: time, **overrides) -> AppointmentSlot:
    fields = {
        'provider_id': provider.id,
        'date': slot_date,
        'start_time': start,
        'end_time': end,
        'appointment_type': 'consultation',
        'slot_duration': 30,
        'location_type': 'virtual',
    }
    fields.update(overrides)
    slot = AppointmentSlot(**fields)
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


@pytest.mark.parametrize(
    ('first', 'second', 'expected'),
    [
        ((time(9, 0), time(9, 30)), (time(9, 30), time(10, 0)), False),
        ((time(9, 30), time(10, 0)), (time(9, 0), time(9, 30)), False),
        ((time(9, 0), time(9, 30)), (time(9, 15), time(9, 45)), True),
        ((time(9, 0), time(10, 0)), (time(9, 15), time(9, 30)), True),
        ((time(9, 0), time(9, 30)), (time(9, 0), time(9, 30)), True),
    ],
)
def test_windows_overlap_uses_half_open_intervals(first, second, expected: bool) -> None:
    assert windows_overlap(*first, *second) is expected


def test_blocks_window_handles_full_and_partial_days(next_monday) -> None:
    full_day = BlockedDay(provider_id=1, date=next_monday, is_full_day=True)
    afternoon = BlockedDay(
        provider_id=1,
        date=next_monday,
        is_full_day=False,
        start_time=time(13, 0),
        end_time=time(17, 0),
    )

    assert blocks_window(None, time(9, 0), time(9, 30)) is False
    assert blocks_window(full_day, time(9, 0), time(9, 30)) is True
    assert blocks_window(afternoon, time(9, 0), time(9, 30)) is False
    assert blocks_window(afternoon, time(12, 30), time(13, 0)) is False
    assert blocks_window(afternoon, time(12, 45), time(13, 15)) is True


def test_resolve_drops_booked_and_keeps_unbooked_overlaps(db, provider, next_monday) -> None:
    booked = make_slot(db, provider, next_monday, time(9, 0), time(9, 30), is_booked=True)
    open_slot = make_slot(db, provider, next_monday, time(10, 0), time(10, 30))
    windows = [
        TimeWindow(next_monday, time(9, 0), time(9, 30)),
        TimeWindow(next_monday, time(9, 30), time(10, 0)),
        TimeWindow(next_monday, time(10, 0), time(10, 30)),
    ]

    resolved = resolve_candidate_windows(windows, [booked, open_slot])

    assert [(w['start_time'], w['existing_slot_id']) for w in resolved] == [
        ('09:30', None),
        ('10:00', open_slot.id),
    ]
    assert all(w['is_booked'] is False for w in resolved)


def test_resolve_drops_windows_inside_partial_block(next_monday) -> None:
    lunch = BlockedDay(
        provider_id=1,
        date=next_monday,
        is_full_day=False,
        start_time=time(12, 0),
        end_time=time(13, 0),
    )
    windows = [
        TimeWindow(next_monday, time(11, 30), time(12, 0)),
        TimeWindow(next_monday, time(12, 0), time(12, 30)),
        TimeWindow(next_monday, time(12, 30), time(13, 0)),
        TimeWindow(next_monday, time(13, 0), time(13, 30)),
    ]

    resolved = resolve_candidate_windows(windows, [], lunch)

    assert [w['start_time'] for w in resolved] == ['11:30', '13:00']


def test_find_active_conflicts_ignores_inactive_and_excluded_slots(db, provider, next_monday) -> None:
    active = make_slot(db, provider, next_monday, time(9, 0), time(9, 30))
    make_slot(db, provider, next_monday, time(9, 15), time(9, 45), is_active=False)
    make_slot(db, provider, next_monday, time(9, 30), time(10, 0))

    conflicts = find_active_conflicts(db, provider.id, next_monday, time(9, 10), time(9, 20))
    assert [slot.id for slot in conflicts] == [active.id]

    excluded = find_active_conflicts(
        db,
        provider.id,
        next_monday,
        time(9, 10),
        time(9, 20),
        exclude_slot_id=active.id,
    )
    assert excluded == []


def test_get_blocked_day_respects_enforcement_setting(db, provider, next_monday, monkeypatch) -> None:
    db.add(BlockedDay(provider_id=provider.id, date=next_monday, is_full_day=True))
    db.commit()

    assert get_blocked_day(db, provider.id, next_monday) is not None

    monkeypatch.setattr(config, 'ENFORCE_BLOCKED_DAYS', False)
    assert get_blocked_day(db, provider.id, next_monday) is None
