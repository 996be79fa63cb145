from datetime import date, time, timedelta

import pytest

from healthfirst.scheduling.blocked_days import (
    create_blocked_day,
    delete_blocked_day,
    list_blocked_days,
    serialize_blocked_day,
    update_blocked_day,
)
from healthfirst.scheduling.errors import NotFound, SlotConflict, ValidationFailure


def test_full_day_block_discards_times(db, provider, next_monday) -> None:
    blocked_day = create_blocked_day(
        db,
        provider.id,
        next_monday,
        is_full_day=True,
        start_time=time(9, 0),
        end_time=time(10, 0),
        reason='Conference',
    )

    assert serialize_blocked_day(blocked_day) == {
        'id': blocked_day.id,
        'provider_id': provider.id,
        'date': next_monday.isoformat(),
        'start_time': None,
        'end_time': None,
        'reason': 'Conference',
        'is_full_day': True,
    }


def test_partial_block_keeps_times(db, provider, next_monday) -> None:
    blocked_day = create_blocked_day(
        db,
        provider.id,
        next_monday,
        is_full_day=False,
        start_time=time(12, 0),
        end_time=time(13, 0),
    )

    assert blocked_day.start_time == time(12, 0)
    assert blocked_day.end_time == time(13, 0)


@pytest.mark.parametrize(
    ('kwargs', 'error_field'),
    [
        ({'blocked_date': date.today() - timedelta(days=1)}, 'date'),
        ({'is_full_day': False, 'start_time': time(9, 0)}, 'start_time'),
        ({'is_full_day': False, 'start_time': time(10, 0), 'end_time': time(9, 0)}, 'end_time'),
    ],
)
def test_invalid_blocks_are_rejected(db, provider, next_monday, kwargs: dict, error_field: str) -> None:
    arguments = {'blocked_date': next_monday}
    arguments.update(kwargs)

    with pytest.raises(ValidationFailure) as exception_info:
        create_blocked_day(db, provider.id, **arguments)

    assert error_field in exception_info.value.errors


def test_date_can_only_be_blocked_once(db, provider, next_monday) -> None:
    create_blocked_day(db, provider.id, next_monday)

    with pytest.raises(SlotConflict) as exception_info:
        create_blocked_day(db, provider.id, next_monday)

    assert exception_info.value.message == 'This date is already blocked.'


def test_update_rechecks_uniqueness_when_date_changes(db, provider, next_monday) -> None:
    first = create_blocked_day(db, provider.id, next_monday)
    create_blocked_day(db, provider.id, next_monday + timedelta(days=1))

    with pytest.raises(SlotConflict):
        update_blocked_day(db, provider.id, first.id, {'date': next_monday + timedelta(days=1)})

    updated = update_blocked_day(
        db,
        provider.id,
        first.id,
        {'is_full_day': False, 'start_time': time(14, 0), 'end_time': time(15, 0), 'reason': None},
    )
    assert updated.is_full_day is False
    assert updated.start_time == time(14, 0)
    assert updated.reason is None


def test_list_and_delete_blocked_days(db, provider, make_provider, next_monday) -> None:
    later = create_blocked_day(db, provider.id, next_monday + timedelta(days=14))
    sooner = create_blocked_day(db, provider.id, next_monday)

    assert [b.id for b in list_blocked_days(db, provider.id)] == [sooner.id, later.id]
    assert [b.id for b in list_blocked_days(db, provider.id, next_monday, next_monday + timedelta(days=7))] == [
        sooner.id,
    ]

    with pytest.raises(NotFound):
        delete_blocked_day(db, make_provider().id, sooner.id)

    delete_blocked_day(db, provider.id, sooner.id)
    assert [b.id for b in list_blocked_days(db, provider.id)] == [later.id]
