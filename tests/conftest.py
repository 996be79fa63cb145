import os
from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from healthfirst.auth.jwt_handler import ROLE_PATIENT, ROLE_PROVIDER, create_access_token  # noqa: E402
from healthfirst.database import Base, get_db, init_db  # noqa: E402
from healthfirst.main import app  # noqa: E402
from healthfirst.models.availability import ProviderAvailability  # noqa: E402
from healthfirst.models.patient import Patient  # noqa: E402
from healthfirst.models.provider import PROVIDER_STATUS_APPROVED, Provider  # noqa: E402


def upcoming_weekday(weekday: int, weeks_ahead: int = 1) -> date:
    today = date.today()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days + 7 * (weeks_ahead - 1))


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def next_monday() -> date:
    return upcoming_weekday(0)


@pytest.fixture
def make_provider(db):
    counter = {'value': 0}

    def factory(**overrides) -> Provider:
        counter['value'] += 1
        fields = {
            'first_name': 'Dana',
            'last_name': f'Reyes{counter["value"]}',
            'email': f'provider{counter["value"]}@clinic.example',
            'specialization': 'Family Medicine',
            'clinic_name': 'Riverside Clinic',
            'city': 'Memphis',
            'state': 'TN',
            'status': PROVIDER_STATUS_APPROVED,
        }
        fields.update(overrides)
        provider = Provider(**fields)
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    return factory


@pytest.fixture
def make_patient(db):
    counter = {'value': 0}

    def factory(provider: Provider, **overrides) -> Patient:
        counter['value'] += 1
        fields = {
            'patient_code': f'PAT-{counter["value"]:06d}',
            'first_name': 'Sam',
            'last_name': f'Lee{counter["value"]}',
            'email': f'patient{counter["value"]}@example.com',
            'status': 'active',
            'assigned_provider_id': provider.id,
        }
        fields.update(overrides)
        patient = Patient(**fields)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return factory


@pytest.fixture
def set_availability(db):
    def factory(
        provider: Provider,
        day_of_week: str = 'monday',
        start: time = time(9, 0),
        end: time = time(17, 0),
        is_active: bool = True,
        timezone: str = 'UTC',
    ) -> ProviderAvailability:
        availability = ProviderAvailability(
            provider_id=provider.id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            timezone=timezone,
            is_active=is_active,
        )
        db.add(availability)
        db.commit()
        db.refresh(availability)
        return availability

    return factory


@pytest.fixture
def provider(make_provider) -> Provider:
    return make_provider()


@pytest.fixture
def patient(make_patient, provider) -> Patient:
    return make_patient(provider)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def provider_headers(provider) -> dict:
    return {'Authorization': f'Bearer {create_access_token(provider.id, ROLE_PROVIDER)}'}


@pytest.fixture
def patient_headers(patient) -> dict:
    return {'Authorization': f'Bearer {create_access_token(patient.id, ROLE_PATIENT)}'}
