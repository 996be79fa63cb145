import datetime
from datetime import date, time
from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.auth.dependencies import get_current_provider
from healthfirst.database import get_db
from healthfirst.models.appointment_slot import APPOINTMENT_TYPES, LOCATION_TYPES, RECURRENCE_OPTIONS
from healthfirst.models.provider import Provider
from healthfirst.routes.common import database_unavailable
from healthfirst.scheduling.slot_authoring import (
    create_slot,
    delete_slot,
    list_provider_slots,
    serialize_slot,
    update_slot,
)

router = APIRouter(tags=['appointment-slots'])

AppointmentType = Literal['consultation', 'follow_up', 'emergency', 'routine_checkup', 'specialist_consultation']
LocationType = Literal['in_person', 'virtual', 'home_visit']
Recurrence = Literal['none', 'daily', 'weekly', 'monthly']

MIN_SLOT_DURATION_MINUTES = 15
MAX_SLOT_DURATION_MINUTES = 480
MAX_BREAK_DURATION_MINUTES = 120
MAX_APPOINTMENTS_PER_SLOT = 10
MAX_SLOT_NOTES_LENGTH = 1000


class SlotFieldsMixin(BaseModel):

    @field_validator('currency', check_fields=False)
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().upper()
        if len(normalized) != 3 or not normalized.isalpha():
            raise ValueError('Currency must be a 3-letter code.')
        return normalized

    @field_validator('notes', check_fields=False)
    @classmethod
    def normalize_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class CreateSlotRequest(SlotFieldsMixin):
    date: date
    start_time: time
    end_time: time
    timezone: str = Field(default='UTC', max_length=50)
    appointment_type: AppointmentType
    slot_duration: int = Field(ge=MIN_SLOT_DURATION_MINUTES, le=MAX_SLOT_DURATION_MINUTES)
    break_duration: int = Field(default=0, ge=0, le=MAX_BREAK_DURATION_MINUTES)
    max_appointments: int = Field(default=1, ge=1, le=MAX_APPOINTMENTS_PER_SLOT)
    location_type: LocationType
    location_address: str | None = Field(default=None, max_length=255)
    room_number: str | None = Field(default=None, max_length=50)
    fee: Decimal | None = Field(default=None, ge=0)
    currency: str | None = None
    insurance_accepted: bool = False
    notes: str | None = Field(default=None, max_length=MAX_SLOT_NOTES_LENGTH)
    special_requirements: list[Any] | None = None
    recurrence: Recurrence = 'none'
    recurrence_end_date: date | None = None


class UpdateSlotRequest(SlotFieldsMixin):
    date: datetime.date | None = None
    start_time: time | None = None
    end_time: time | None = None
    timezone: str | None = Field(default=None, max_length=50)
    appointment_type: AppointmentType | None = None
    slot_duration: int | None = Field(default=None, ge=MIN_SLOT_DURATION_MINUTES, le=MAX_SLOT_DURATION_MINUTES)
    break_duration: int | None = Field(default=None, ge=0, le=MAX_BREAK_DURATION_MINUTES)
    max_appointments: int | None = Field(default=None, ge=1, le=MAX_APPOINTMENTS_PER_SLOT)
    location_type: LocationType | None = None
    location_address: str | None = Field(default=None, max_length=255)
    room_number: str | None = Field(default=None, max_length=50)
    fee: Decimal | None = Field(default=None, ge=0)
    currency: str | None = None
    insurance_accepted: bool | None = None
    notes: str | None = Field(default=None, max_length=MAX_SLOT_NOTES_LENGTH)
    special_requirements: list[Any] | None = None
    is_active: bool | None = None


@router.get('')
def list_slots(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    slot_status: Literal['available', 'booked'] | None = Query(default=None, alias='status'),
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        slots = list_provider_slots(db, provider.id, start_date, end_date, slot_status)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {
            'slots': [serialize_slot(slot) for slot in slots],
            'appointment_types': APPOINTMENT_TYPES,
            'location_types': LOCATION_TYPES,
            'recurrence_options': RECURRENCE_OPTIONS,
        },
    }


@router.post('', status_code=status.HTTP_201_CREATED)
def create_appointment_slot(
    data: CreateSlotRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        slot, recurrences, skipped_dates = create_slot(db, provider.id, data.model_dump())
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Appointment slot created successfully.',
        'data': {
            'slot': serialize_slot(slot),
            'recurring_slots': [serialize_slot(clone) for clone in recurrences],
            'skipped_dates': [skipped.isoformat() for skipped in skipped_dates],
        },
    }


@router.put('/{slot_id}')
def update_appointment_slot(
    slot_id: int,
    data: UpdateSlotRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        slot = update_slot(db, provider.id, slot_id, data.model_dump(exclude_unset=True))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Appointment slot updated successfully.',
        'data': {'slot': serialize_slot(slot)},
    }


@router.delete('/{slot_id}')
def delete_appointment_slot(
    slot_id: int,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        delete_slot(db, provider.id, slot_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'success': True, 'message': 'Appointment slot deleted successfully.'}
