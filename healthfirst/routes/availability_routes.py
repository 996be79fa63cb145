from datetime import time

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.auth.dependencies import get_current_provider
from healthfirst.database import get_db
from healthfirst.models.availability import DAYS_OF_WEEK
from healthfirst.models.provider import Provider
from healthfirst.routes.common import database_unavailable, provider_summary
from healthfirst.scheduling.availability import (
    TIMEZONES,
    bulk_update_availability,
    delete_availability,
    weekly_availability,
)

router = APIRouter(tags=['availability'])

MAX_TIMEZONE_LENGTH = 50


class DayAvailabilityRequest(BaseModel):
    day_of_week: str
    is_active: bool = False
    start_time: time | None = None
    end_time: time | None = None
    timezone: str | None = None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in DAYS_OF_WEEK:
            raise ValueError('Invalid day of week.')
        return normalized

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) > MAX_TIMEZONE_LENGTH:
            raise ValueError(f'Timezone must be {MAX_TIMEZONE_LENGTH} characters or fewer.')
        return normalized or None


class UpdateAvailabilityRequest(BaseModel):
    availabilities: list[DayAvailabilityRequest]


@router.get('')
def get_weekly_availability(
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        availabilities = weekly_availability(db, provider.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {
            'provider': provider_summary(provider),
            'availabilities': availabilities,
            'timezones': TIMEZONES,
        },
    }


@router.put('')
def update_weekly_availability(
    data: UpdateAvailabilityRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        availabilities = bulk_update_availability(db, provider.id, data.availabilities)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Availability settings updated successfully.',
        'data': {'availabilities': availabilities},
    }


@router.delete('/{availability_id}')
def remove_availability(
    availability_id: int,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        delete_availability(db, provider.id, availability_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'success': True, 'message': 'Availability deleted successfully.'}
