import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./healthfirst.db")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:5173", "http://localhost:3000"],
)

DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30"))
MIN_GENERATED_SLOT_DURATION_MINUTES = int(os.getenv("MIN_GENERATED_SLOT_DURATION_MINUTES", "10"))
MAX_GENERATED_SLOT_DURATION_MINUTES = int(os.getenv("MAX_GENERATED_SLOT_DURATION_MINUTES", "240"))

# Blocked days remove windows from generation and booking. Turning this off
# leaves them as provider-side records only.
ENFORCE_BLOCKED_DAYS = _get_bool(os.getenv("ENFORCE_BLOCKED_DAYS"), default=True)

BOOKING_LOCK_STRIPES = int(os.getenv("BOOKING_LOCK_STRIPES", "64"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MIN_GENERATED_SLOT_DURATION_MINUTES > MAX_GENERATED_SLOT_DURATION_MINUTES:
        raise RuntimeError("MIN_GENERATED_SLOT_DURATION_MINUTES exceeds the maximum.")
    if BOOKING_LOCK_STRIPES < 1:
        raise RuntimeError("BOOKING_LOCK_STRIPES must be at least 1.")
