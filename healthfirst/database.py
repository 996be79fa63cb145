from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from healthfirst.core import config


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False

SCHEDULING_INDEXES = {
    'appointment_slots': [
        'CREATE INDEX IF NOT EXISTS idx_slots_provider_date_start ON appointment_slots(provider_id, date, start_time)',
        'CREATE INDEX IF NOT EXISTS idx_slots_date_active_booked ON appointment_slots(date, is_active, is_booked)',
    ],
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_provider_patient_status '
        'ON appointments(provider_id, patient_id, status)',
    ],
    'patients': [
        'CREATE INDEX IF NOT EXISTS idx_patients_assigned_provider_status ON patients(assigned_provider_id, status)',
    ],
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    # Registers every model on Base.metadata before creating tables.
    from healthfirst.models import (  # noqa: F401
        appointment,
        appointment_slot,
        availability,
        blocked_day,
        patient,
        provider,
    )

    Base.metadata.create_all(bind=bind or engine)


def ensure_scheduling_schema(bind=None) -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        target = bind or engine
        existing_tables = set(inspect(target).get_table_names())

        with target.begin() as connection:
            for table_name, statements in SCHEDULING_INDEXES.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _scheduling_schema_checked = True
