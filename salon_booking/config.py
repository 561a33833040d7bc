# salon_booking/config.py

"""
Application configuration with environment variable overrides.

Working-hour values here are only the built-in fallback: a Settings row
persisted by an admin always takes precedence over them.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(env_var: str, default: str) -> int:
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _env_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./salon.db"))
    echo: bool = field(default_factory=lambda: _env_bool("SQL_ECHO", "false"))


@dataclass(frozen=True)
class AuthConfig:
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "change-me-later"))
    algorithm: str = field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    access_token_expire_minutes: int = field(
        default_factory=lambda: _env_int("ACCESS_TOKEN_EXPIRE_MINUTES", "30")
    )


@dataclass(frozen=True)
class ScheduleDefaults:
    """Fallback working hours used when no Settings row exists yet."""

    work_start_hour: int = field(default_factory=lambda: _env_int("DEFAULT_WORK_START_HOUR", "10"))
    work_end_hour: int = field(default_factory=lambda: _env_int("DEFAULT_WORK_END_HOUR", "18"))
    time_slot_interval_minutes: int = field(
        default_factory=lambda: _env_int("DEFAULT_TIME_SLOT_INTERVAL_MINUTES", "30")
    )


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    schedule: ScheduleDefaults = field(default_factory=ScheduleDefaults)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Salon Booking API"))


def _validate_config(config: AppConfig) -> None:
    schedule = config.schedule
    for name, hour in (
        ("DEFAULT_WORK_START_HOUR", schedule.work_start_hour),
        ("DEFAULT_WORK_END_HOUR", schedule.work_end_hour),
    ):
        if not 0 <= hour <= 23:
            raise ValueError(f"{name} must be between 0 and 23, got {hour}")
    if schedule.work_start_hour >= schedule.work_end_hour:
        raise ValueError(
            "DEFAULT_WORK_START_HOUR must be lower than DEFAULT_WORK_END_HOUR, "
            f"got {schedule.work_start_hour} >= {schedule.work_end_hour}"
        )
    if schedule.time_slot_interval_minutes < 1:
        raise ValueError(
            "DEFAULT_TIME_SLOT_INTERVAL_MINUTES must be >= 1, "
            f"got {schedule.time_slot_interval_minutes}"
        )
    if config.auth.access_token_expire_minutes < 1:
        raise ValueError(
            "ACCESS_TOKEN_EXPIRE_MINUTES must be >= 1, "
            f"got {config.auth.access_token_expire_minutes}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


config = load_config()
