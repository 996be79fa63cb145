from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from healthfirst.auth import jwt_handler
from healthfirst.database import get_db
from healthfirst.models.patient import Patient
from healthfirst.models.provider import Provider

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthSession:
    """The caller's session, derived from the bearer token alone."""
    token: str
    role: str
    subject_id: int
    expires_at: datetime


def _unauthenticated(detail: str = "Unauthenticated.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_auth_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthSession:
    if credentials is None:
        raise _unauthenticated()

    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise _unauthenticated("Invalid token.") from exc

    role = payload.get("role")
    subject = payload.get("sub")
    if role not in jwt_handler.ROLES or not subject or not str(subject).isdigit():
        raise _unauthenticated("Invalid token subject.")

    return AuthSession(
        token=token,
        role=role,
        subject_id=int(subject),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def _require_role(auth: AuthSession, role: str) -> None:
    if auth.role != role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Only {role}s can access this resource.")


def get_current_provider(
    auth: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
) -> Provider:
    _require_role(auth, jwt_handler.ROLE_PROVIDER)
    provider = db.get(Provider, auth.subject_id)
    if provider is None:
        raise _unauthenticated("Provider not found.")
    return provider


def get_current_patient(
    auth: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
) -> Patient:
    _require_role(auth, jwt_handler.ROLE_PATIENT)
    patient = db.get(Patient, auth.subject_id)
    if patient is None:
        raise _unauthenticated("Patient not found.")
    return patient
