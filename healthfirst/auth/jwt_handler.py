from datetime import datetime, timedelta, timezone

import jwt

from healthfirst.core import config

ROLE_PROVIDER = "provider"
ROLE_PATIENT = "patient"
ROLES = (ROLE_PROVIDER, ROLE_PATIENT)


def create_access_token(subject: int | str, role: str, expires_minutes: int | None = None) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "role": role,
        "exp": now + timedelta(minutes=expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )
