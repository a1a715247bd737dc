"""Runtime configuration, read from environment variables."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./backgammon.db"
    log_level: str = "INFO"
    default_target_score: int = 7
    clock_seconds: float = 600.0
    delay_seconds: float = 12.0
    refresh_interval_seconds: float = 30.0
    cors_origins: tuple[str, ...] = ("*",)


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    defaults = Settings()
    return Settings(
        database_url=os.getenv("BACKGAMMON_DATABASE_URL", defaults.database_url),
        log_level=os.getenv("BACKGAMMON_LOG_LEVEL", defaults.log_level).upper(),
        default_target_score=int(
            os.getenv(
                "BACKGAMMON_DEFAULT_TARGET_SCORE", str(defaults.default_target_score)
            )
        ),
        clock_seconds=_float_env("BACKGAMMON_CLOCK_SECONDS", defaults.clock_seconds),
        delay_seconds=_float_env("BACKGAMMON_DELAY_SECONDS", defaults.delay_seconds),
        refresh_interval_seconds=_float_env(
            "BACKGAMMON_REFRESH_INTERVAL_SECONDS", defaults.refresh_interval_seconds
        ),
        cors_origins=tuple(
            origin.strip()
            for origin in os.getenv("BACKGAMMON_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ),
    )


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or get_settings().log_level, format=LOG_FORMAT)
