from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.auth.dependencies import get_current_patient
from healthfirst.core import config
from healthfirst.database import get_db
from healthfirst.models.patient import Patient
from healthfirst.models.provider import PROVIDER_STATUS_APPROVED, Provider
from healthfirst.routes.common import database_unavailable, provider_summary
from healthfirst.scheduling.appointments import list_patient_appointments, serialize_appointment
from healthfirst.scheduling.availability import (
    TIMEZONES,
    date_availability,
    get_day_availability,
    weekly_availability,
)
from healthfirst.scheduling.booking import book_by_time, book_slot, get_bookable_provider
from healthfirst.scheduling.conflicts import get_blocked_day, load_day_slots, resolve_candidate_windows
from healthfirst.scheduling.slot_authoring import list_available_slots, serialize_slot
from healthfirst.scheduling.slots import generate_windows

router = APIRouter(tags=['patient'])

MAX_BOOKING_NOTES_LENGTH = 1000


class BookingNotesMixin(BaseModel):

    @field_validator('notes', check_fields=False)
    @classmethod
    def normalize_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class BookSlotRequest(BookingNotesMixin):
    slot_id: int
    notes: str | None = Field(default=None, max_length=MAX_BOOKING_NOTES_LENGTH)


class BookByTimeRequest(BookingNotesMixin):
    provider_id: int
    date: date
    start_time: time
    end_time: time
    notes: str | None = Field(default=None, max_length=MAX_BOOKING_NOTES_LENGTH)


def booked_response(appointment) -> dict:
    return {
        'success': True,
        'message': 'Appointment booked successfully.',
        'data': {'appointment': serialize_appointment(appointment)},
    }


@router.get('/providers')
def list_providers(
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        providers = db.query(Provider).filter(
            Provider.status == PROVIDER_STATUS_APPROVED,
        ).order_by(Provider.last_name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {
            'providers': [
                {
                    'id': provider.id,
                    'name': provider.full_name,
                    'specialization': provider.specialization,
                    'clinic_name': provider.clinic_name,
                    'location': provider.location,
                }
                for provider in providers
            ],
            'assigned_provider_id': patient.assigned_provider_id,
        },
    }


@router.get('/providers/{provider_id}/availability')
def get_provider_weekly_availability(
    provider_id: int,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        provider = get_bookable_provider(db, provider_id)
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


@router.get('/providers/{provider_id}/availability/date')
def get_provider_date_availability(
    provider_id: int,
    target_date: date = Query(..., alias='date'),
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        provider = get_bookable_provider(db, provider_id)
        availability = date_availability(db, provider.id, target_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {
            'provider': {'id': provider.id, 'name': provider.full_name},
            **availability,
        },
    }


@router.get('/providers/{provider_id}/slots')
def get_available_slots(
    provider_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        provider = get_bookable_provider(db, provider_id)
        slots = list_available_slots(db, provider.id, start_date, end_date)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'success': True, 'data': {'slots': [serialize_slot(slot) for slot in slots]}}


@router.get('/providers/{provider_id}/generate-slots')
def generate_slots(
    provider_id: int,
    target_date: date = Query(..., alias='date'),
    slot_duration: int = Query(
        default=config.DEFAULT_SLOT_DURATION_MINUTES,
        ge=config.MIN_GENERATED_SLOT_DURATION_MINUTES,
        le=config.MAX_GENERATED_SLOT_DURATION_MINUTES,
    ),
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        provider = get_bookable_provider(db, provider_id)
        availability = get_day_availability(db, provider.id, target_date)
        windows = generate_windows(availability, target_date, slot_duration)
        slots = resolve_candidate_windows(
            windows,
            load_day_slots(db, provider.id, target_date),
            get_blocked_day(db, provider.id, target_date),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'success': True, 'data': {'slots': slots}}


@router.post('/appointments/book', status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookSlotRequest,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointment = book_slot(db, patient.id, data.slot_id, data.notes)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return booked_response(appointment)


@router.post('/appointments/book-by-time', status_code=status.HTTP_201_CREATED)
def book_appointment_by_time(
    data: BookByTimeRequest,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointment = book_by_time(
            db,
            patient.id,
            data.provider_id,
            data.date,
            data.start_time,
            data.end_time,
            data.notes,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return booked_response(appointment)


@router.get('/appointments')
def list_my_appointments(
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    try:
        appointments = list_patient_appointments(db, patient.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {'appointments': [serialize_appointment(appointment) for appointment in appointments]},
    }
