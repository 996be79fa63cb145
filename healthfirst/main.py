import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from healthfirst.core import config
from healthfirst.database import ensure_scheduling_schema, init_db
from healthfirst.routes import (
    availability_routes,
    blocked_day_routes,
    patient_routes,
    provider_appointment_routes,
    slot_routes,
)
from healthfirst.scheduling.errors import SchedulingError, SlotConflict

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='HealthFirst Scheduling API', debug=config.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_db()
        ensure_scheduling_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(SchedulingError)
def handle_scheduling_error(request: Request, exc: SchedulingError) -> JSONResponse:
    body = {'success': False, 'message': exc.message}
    if exc.errors:
        body['errors'] = exc.errors
    if isinstance(exc, SlotConflict) and exc.conflicts:
        body['conflicts'] = exc.conflicts
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


@app.exception_handler(StarletteHTTPException)
def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'success': False, 'message': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path')]
        field = '.'.join(location) or 'request'
        errors.setdefault(field, []).append(error.get('msg', 'Invalid value.'))

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={'success': False, 'message': 'Validation failed.', 'errors': errors},
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    body = {'success': False, 'message': 'An unexpected error occurred.'}
    if config.DEBUG:
        body['error'] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


@app.get('/')
def root():
    return {'status': 'HealthFirst Scheduling API Running'}


app.include_router(availability_routes.router, prefix='/provider/availability')
app.include_router(slot_routes.router, prefix='/provider/appointment-slots')
app.include_router(blocked_day_routes.router, prefix='/provider/blocked-days')
app.include_router(provider_appointment_routes.router, prefix='/provider/appointments')
app.include_router(patient_routes.router, prefix='/patient')
