from fastapi import HTTPException, status

from healthfirst.models.provider import Provider


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and database credentials.',
    )


def provider_summary(provider: Provider) -> dict:
    return {
        'id': provider.id,
        'name': provider.full_name,
        'specialization': provider.specialization,
        'clinic_name': provider.clinic_name,
    }
