from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthfirst.auth.dependencies import get_current_provider
from healthfirst.database import get_db
from healthfirst.models.appointment import APPOINTMENT_STATUSES
from healthfirst.models.appointment_slot import APPOINTMENT_TYPES
from healthfirst.models.provider import Provider
from healthfirst.routes.common import database_unavailable
from healthfirst.scheduling.appointments import (
    appointment_statistics,
    list_provider_appointments,
    serialize_appointment,
    update_appointment_status,
)

router = APIRouter(tags=['provider-appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 1000


class UpdateAppointmentStatusRequest(BaseModel):
    status: str
    notes: str | None = Field(default=None, max_length=MAX_APPOINTMENT_NOTES_LENGTH)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


@router.get('')
def list_appointments(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    appointment_status: str | None = Query(default=None, alias='status'),
    appointment_type: str | None = Query(default=None),
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        grouped = list_provider_appointments(
            db,
            provider.id,
            start_date=start_date,
            end_date=end_date,
            appointment_status=appointment_status,
            appointment_type=appointment_type,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {
        'success': True,
        'data': {
            'appointments': {
                day: [serialize_appointment(appointment) for appointment in appointments]
                for day, appointments in grouped.items()
            },
            'total_count': sum(len(appointments) for appointments in grouped.values()),
            'statuses': list(APPOINTMENT_STATUSES),
            'appointment_types': APPOINTMENT_TYPES,
        },
    }


@router.get('/statistics')
def get_statistics(
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        stats = appointment_statistics(db, provider.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'success': True, 'data': stats}


@router.put('/{appointment_id}/status')
def change_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    try:
        appointment = update_appointment_status(db, provider.id, appointment_id, data.status, data.notes)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'success': True,
        'message': 'Appointment status updated successfully.',
        'data': {'appointment': serialize_appointment(appointment)},
    }
