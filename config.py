from __future__ import annotations

import os


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name, default) or default).strip()


def _env_int(name: str, default: int) -> int:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "") or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _env_csv(name: str, default: str = "") -> list[str]:
    raw = _env_str(name, default)
    return [p.strip() for p in raw.split(",") if p.strip()]


class Config:
    """Process configuration read from the environment (after `load_dotenv`)."""

    def __init__(self):
        self.APP_ENV = _env_str("APP_ENV", "development").lower()
        self.IS_PRODUCTION = self.APP_ENV in {"prod", "production"}
        self.APP_VERSION = _env_str("APP_VERSION", "0.1.0")
        self.LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()

        self.HOST = _env_str("HOST", "127.0.0.1")
        self.PORT = _env_int("PORT", 5000)

        self.DATABASE_URL = _env_str("DATABASE_URL", "sqlite:///./onboarding.db")
        self.DB_POOL_SIZE = _env_int("DB_POOL_SIZE", 5)
        self.DB_MAX_OVERFLOW = _env_int("DB_MAX_OVERFLOW", 10)

        self.REDIS_URL = _env_str("REDIS_URL", "")
        self.ALLOWED_ORIGINS = _env_csv("ALLOWED_ORIGINS", "http://localhost:3000")

        self.SESSION_TTL_MINUTES = _env_int("SESSION_TTL_MINUTES", 8 * 60)
        self.INTERNAL_CRON_TOKEN = _env_str("INTERNAL_CRON_TOKEN", "")

        self.RATE_LIMIT_LOGIN = _env_int("RATE_LIMIT_LOGIN", 10)
        self.RATE_LIMIT_TOKEN = _env_int("RATE_LIMIT_TOKEN", 30)
        self.RATE_LIMIT_DEFAULT = _env_int("RATE_LIMIT_DEFAULT", 120)
        self.RATE_LIMIT_GLOBAL = _env_int("RATE_LIMIT_GLOBAL", 600)

        # Onboarding session defaults
        self.FRONTEND_URL = _env_str("FRONTEND_URL", "http://localhost:3000").rstrip("/")
        self.ONBOARDING_EXPIRATION_HOURS = _env_int("ONBOARDING_EXPIRATION_HOURS", 168)
        self.ONBOARDING_WALKIN_EXPIRATION_HOURS = _env_int("ONBOARDING_WALKIN_EXPIRATION_HOURS", 24)
        self.ONBOARDING_SWEEP_MINUTES = _env_int("ONBOARDING_SWEEP_MINUTES", 15)
        self.ONBOARDING_EXPIRING_WINDOW_HOURS = _env_int("ONBOARDING_EXPIRING_WINDOW_HOURS", 24)

        self.MAIL_API_URL = _env_str("MAIL_API_URL", "")
        self.MAIL_API_KEY = _env_str("MAIL_API_KEY", "")
        self.MAIL_FROM = _env_str("MAIL_FROM", "onboarding@localhost")
        self.MAIL_TIMEOUT_SECONDS = _env_int("MAIL_TIMEOUT_SECONDS", 10)

        self.DEBUG_ERROR_DETAILS = _env_bool("DEBUG_ERROR_DETAILS", False)

    def validate(self) -> None:
        if not self.DATABASE_URL:
            raise RuntimeError("Missing DATABASE_URL")
        if self.SESSION_TTL_MINUTES <= 0:
            raise RuntimeError("SESSION_TTL_MINUTES must be positive")
        if self.ONBOARDING_EXPIRATION_HOURS <= 0:
            raise RuntimeError("ONBOARDING_EXPIRATION_HOURS must be positive")

        if self.IS_PRODUCTION:
            if self.DATABASE_URL.startswith("sqlite"):
                raise RuntimeError("SQLite is not supported when APP_ENV=production")
            if not self.INTERNAL_CRON_TOKEN or len(self.INTERNAL_CRON_TOKEN) < 24:
                raise RuntimeError("INTERNAL_CRON_TOKEN must be set (>= 24 chars) in production")
            if "*" in self.ALLOWED_ORIGINS:
                raise RuntimeError("Wildcard ALLOWED_ORIGINS is not allowed in production")
