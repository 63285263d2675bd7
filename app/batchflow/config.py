import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    activity_log_default_limit: int
    activity_log_max_limit: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).") from e


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///batchflow.db"),
        activity_log_default_limit=_getenv_int("ACTIVITY_LOG_DEFAULT_LIMIT", 10),
        activity_log_max_limit=_getenv_int("ACTIVITY_LOG_MAX_LIMIT", 100),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "ACTIVITY_LOG_DEFAULT_LIMIT": s.activity_log_default_limit,
        "ACTIVITY_LOG_MAX_LIMIT": s.activity_log_max_limit,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # JSON API: request bodies are small
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
        "JSON_SORT_KEYS": False,
    }
