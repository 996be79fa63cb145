from datetime import date, time, timedelta

import pytest

from healthfirst.models.availability import ProviderAvailability
from healthfirst.scheduling.errors import ValidationFailure
from healthfirst.scheduling.slots import (
    TimeWindow,
    day_key,
    format_time,
    generate_windows,
    minutes_between,
)

MONDAY = date(2030, 1, 7)


def availability(start: time, end: time, day: str = 'monday', is_active: bool = True) -> ProviderAvailability:
    return ProviderAvailability(
        provider_id=1,
        day_of_week=day,
        start_time=start,
        end_time=end,
        timezone='America/Chicago',
        is_active=is_active,
    )


def test_day_key_maps_weekday_to_lowercase_name() -> None:
    assert day_key(MONDAY) == 'monday'
    assert day_key(MONDAY + timedelta(days=6)) == 'sunday'


def test_format_time_uses_hours_and_minutes() -> None:
    assert format_time(time(9, 5)) == '09:05'
    assert format_time(None) is None


def test_monday_morning_hour_yields_two_half_hour_windows() -> None:
    windows = list(generate_windows(availability(time(9, 0), time(10, 0)), MONDAY, 30))

    assert windows == [
        TimeWindow(MONDAY, time(9, 0), time(9, 30), 'America/Chicago'),
        TimeWindow(MONDAY, time(9, 30), time(10, 0), 'America/Chicago'),
    ]
    assert windows[0].as_dict() == {
        'date': '2030-01-07',
        'start_time': '09:00',
        'end_time': '09:30',
        'timezone': 'America/Chicago',
    }


@pytest.mark.parametrize('slot_duration', [10, 25, 30, 45, 60, 190])
def test_window_count_is_floor_of_available_minutes(slot_duration: int) -> None:
    window = availability(time(9, 0), time(12, 10))

    windows = list(generate_windows(window, MONDAY, slot_duration))

    assert len(windows) == minutes_between(time(9, 0), time(12, 10)) // slot_duration
    assert all(w.duration_minutes == slot_duration for w in windows)
    assert all(w.end_time <= time(12, 10) for w in windows)


def test_windows_are_back_to_back() -> None:
    windows = list(generate_windows(availability(time(13, 0), time(15, 0)), MONDAY, 40))

    for earlier, later in zip(windows, windows[1:]):
        assert earlier.end_time == later.start_time


def test_trailing_partial_window_is_dropped() -> None:
    windows = list(generate_windows(availability(time(9, 0), time(9, 50)), MONDAY, 30))

    assert [w.start_time for w in windows] == [time(9, 0)]


@pytest.mark.parametrize(
    'window',
    [
        None,
        availability(time(9, 0), time(10, 0), is_active=False),
        availability(time(9, 0), time(10, 0), day='tuesday'),
        availability(time(10, 0), time(10, 0)),
        availability(time(11, 0), time(10, 0)),
    ],
)
def test_no_windows_without_usable_availability(window) -> None:
    assert list(generate_windows(window, MONDAY, 30)) == []


@pytest.mark.parametrize('slot_duration', [0, 5, 9, 241])
def test_out_of_range_duration_is_rejected(slot_duration: int) -> None:
    with pytest.raises(ValidationFailure) as exception_info:
        generate_windows(availability(time(9, 0), time(10, 0)), MONDAY, slot_duration)

    assert 'slot_duration' in exception_info.value.errors
