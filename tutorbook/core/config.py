import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tutorbook.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), default=["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

UPCOMING_LIMIT = int(os.getenv("UPCOMING_LIMIT", "5"))
MAX_NOTES_LENGTH = int(os.getenv("MAX_NOTES_LENGTH", "600"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
