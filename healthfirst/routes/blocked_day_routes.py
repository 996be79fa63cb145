import datetime
from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.auth.dependencies import get_current_provider
from healthfirst.database import get_db
from healthfirst.models.provider import Provider
from healthfirst.routes.common import database_unavailable
from healthfirst.scheduling.blocked_days import (
    create_blocked_day,
    delete_blocked_day,
    list_blocked_days,
    serialize_blocked_day,
    update_blocked_day,
)

router = APIRouter(tags=['blocked-days'])

MAX_REASON_LENGTH = 255


class BlockedDayReasonMixin(BaseModel):

    @field_validator('reason', check_fields=False)
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class CreateBlockedDayRequest(BlockedDayReasonMixin):
    date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)
    is_full_day: bool = True


class UpdateBlockedDayRequest(BlockedDayReasonMixin):
    date: datetime.date | None = None
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)
    is_full_day: bool | None = None


@router.get('')
def get_blocked_days(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        blocked_days = list_blocked_days(db, provider.id, start_date, end_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {'blocked_days': [serialize_blocked_day(blocked_day) for blocked_day in blocked_days]},
    }


@router.post('', status_code=status.HTTP_201_CREATED)
def block_day(
    data: CreateBlockedDayRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        blocked_day = create_blocked_day(
            db,
            provider.id,
            data.date,
            is_full_day=data.is_full_day,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Blocked day created successfully.',
        'data': {'blocked_day': serialize_blocked_day(blocked_day)},
    }


@router.put('/{blocked_day_id}')
def edit_blocked_day(
    blocked_day_id: int,
    data: UpdateBlockedDayRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in {'reason', 'start_time', 'end_time'}
    }

    try:
        blocked_day = update_blocked_day(db, provider.id, blocked_day_id, changes)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Blocked day updated successfully.',
        'data': {'blocked_day': serialize_blocked_day(blocked_day)},
    }


@router.delete('/{blocked_day_id}')
def unblock_day(
    blocked_day_id: int,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        delete_blocked_day(db, provider.id, blocked_day_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'success': True, 'message': 'Blocked day deleted successfully.'}
