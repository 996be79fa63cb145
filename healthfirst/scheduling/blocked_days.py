import logging
from datetime import date, time

from sqlalchemy.orm import Session

from healthfirst.models.blocked_day import BlockedDay
from healthfirst.scheduling.errors import NotFound, SlotConflict, ValidationFailure
from healthfirst.scheduling.slots import format_time

logger = logging.getLogger(__name__)


def serialize_blocked_day(blocked_day: BlockedDay) -> dict:
    return {
        'id': blocked_day.id,
        'provider_id': blocked_day.provider_id,
        'date': blocked_day.date.isoformat(),
        'start_time': format_time(blocked_day.start_time),
        'end_time': format_time(blocked_day.end_time),
        'reason': blocked_day.reason,
        'is_full_day': blocked_day.is_full_day,
    }


def _validate_block(blocked_date: date, is_full_day: bool, start_time: time | None, end_time: time | None) -> None:
    errors: dict[str, list[str]] = {}

    if blocked_date < date.today():
        errors['date'] = ['The date must be today or later.']

    if not is_full_day:
        if start_time is None or end_time is None:
            errors['start_time'] = ['Start and end time are required for a partial-day block.']
        elif start_time >= end_time:
            errors['end_time'] = ['End time must be after start time.']

    if errors:
        raise ValidationFailure('Validation failed.', errors=errors)


def _ensure_date_free(db: Session, provider_id: int, blocked_date: date, exclude_id: int | None = None) -> None:
    query = db.query(BlockedDay).filter(
        BlockedDay.provider_id == provider_id,
        BlockedDay.date == blocked_date,
    )
    if exclude_id is not None:
        query = query.filter(BlockedDay.id != exclude_id)

    if query.first() is not None:
        raise SlotConflict('This date is already blocked.')


def list_blocked_days(
    db: Session,
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[BlockedDay]:
    query = db.query(BlockedDay).filter(BlockedDay.provider_id == provider_id)
    if start_date is not None and end_date is not None:
        query = query.filter(BlockedDay.date >= start_date, BlockedDay.date <= end_date)

    return query.order_by(BlockedDay.date.asc()).all()


def create_blocked_day(
    db: Session,
    provider_id: int,
    blocked_date: date,
    is_full_day: bool = True,
    start_time: time | None = None,
    end_time: time | None = None,
    reason: str | None = None,
) -> BlockedDay:
    _validate_block(blocked_date, is_full_day, start_time, end_time)
    _ensure_date_free(db, provider_id, blocked_date)

    blocked_day = BlockedDay(
        provider_id=provider_id,
        date=blocked_date,
        is_full_day=is_full_day,
        start_time=None if is_full_day else start_time,
        end_time=None if is_full_day else end_time,
        reason=reason,
    )
    db.add(blocked_day)
    db.commit()
    db.refresh(blocked_day)

    logger.info('Provider %s blocked %s (full day: %s)', provider_id, blocked_date, is_full_day)
    return blocked_day


def get_blocked_day_or_404(db: Session, provider_id: int, blocked_day_id: int) -> BlockedDay:
    blocked_day = db.query(BlockedDay).filter(
        BlockedDay.id == blocked_day_id,
        BlockedDay.provider_id == provider_id,
    ).first()
    if blocked_day is None:
        raise NotFound('Blocked day not found.')
    return blocked_day


def update_blocked_day(db: Session, provider_id: int, blocked_day_id: int, changes: dict) -> BlockedDay:
    blocked_day = get_blocked_day_or_404(db, provider_id, blocked_day_id)

    blocked_date = changes.get('date', blocked_day.date)
    is_full_day = changes.get('is_full_day', blocked_day.is_full_day)
    start_time = changes.get('start_time', blocked_day.start_time)
    end_time = changes.get('end_time', blocked_day.end_time)

    _validate_block(blocked_date, is_full_day, start_time, end_time)
    if blocked_date != blocked_day.date:
        _ensure_date_free(db, provider_id, blocked_date, exclude_id=blocked_day.id)

    blocked_day.date = blocked_date
    blocked_day.is_full_day = is_full_day
    blocked_day.start_time = None if is_full_day else start_time
    blocked_day.end_time = None if is_full_day else end_time
    if 'reason' in changes:
        blocked_day.reason = changes['reason']

    db.commit()
    db.refresh(blocked_day)
    return blocked_day


def delete_blocked_day(db: Session, provider_id: int, blocked_day_id: int) -> None:
    blocked_day = get_blocked_day_or_404(db, provider_id, blocked_day_id)
    db.delete(blocked_day)
    db.commit()
