import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_csv(value: str | None) -> list[str]:
    items = [item.strip() for item in (value or "").split(",")]
    return [item for item in items if item]


APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV.lower() == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cet_portal.db")
DATABASE_POOL_TIMEOUT = int(os.getenv("DATABASE_POOL_TIMEOUT", "30"))

CORS_ALLOW_ORIGINS = _get_csv(os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5500"))

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "cet.sid")
SESSION_TTL_SECONDS = max(60, int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60))))
SESSION_PURGE_INTERVAL_SECONDS = max(1, int(os.getenv("SESSION_PURGE_INTERVAL_SECONDS", "300")))
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=IS_PRODUCTION)
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax").strip().lower()

# bcrypt refuses cost factors below 4.
BCRYPT_ROUNDS = max(4, int(os.getenv("BCRYPT_ROUNDS", "12")))

LOGIN_REVEAL_UNKNOWN_EMAIL = _get_bool(os.getenv("LOGIN_REVEAL_UNKNOWN_EMAIL"), default=False)


def validate_runtime_config() -> None:
    if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
        raise RuntimeError("SESSION_COOKIE_SAMESITE must be one of lax, strict or none.")
    if SESSION_COOKIE_SAMESITE == "none" and not SESSION_COOKIE_SECURE:
        raise RuntimeError("SESSION_COOKIE_SAMESITE=none requires SESSION_COOKIE_SECURE.")
    if IS_PRODUCTION and not SESSION_COOKIE_SECURE:
        raise RuntimeError("SESSION_COOKIE_SECURE must be enabled in production.")
