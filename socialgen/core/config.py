import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

SUPPORTED_USAGE_PERIODS = ("month",)


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (PostgreSQL in production, SQLite file databases in tests)
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Fallback session secret when app_settings has none
    AUTH_SECRET: Optional[str] = None

    # Shared secrets for gateway callbacks and operator routes
    WEBHOOK_SECRET: Optional[str] = None
    ADMIN_API_KEY: Optional[str] = None

    # Quota counter window
    USAGE_PERIOD: str = "month"

    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()

REQUIRED_KEYS = ("DATABASE_URL", "AUTH_SECRET", "WEBHOOK_SECRET")


def config_problems(cfg: Settings) -> List[str]:
    """Human-readable configuration problems. Never includes secret values."""
    problems = []
    missing = [key for key in REQUIRED_KEYS if not getattr(cfg, key, None)]
    if missing:
        problems.append(f"Missing required configuration: {', '.join(missing)}")
    if cfg.USAGE_PERIOD not in SUPPORTED_USAGE_PERIODS:
        problems.append(
            f"Unsupported USAGE_PERIOD: {cfg.USAGE_PERIOD} (supported: {', '.join(SUPPORTED_USAGE_PERIODS)})"
        )
    return problems


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """
    Check settings at startup.

    Strict mode (CONFIG_STRICT or strict=True) raises RuntimeError on the
    first report; otherwise every problem is logged as a warning.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("socialgen")
    strict_mode = cfg.CONFIG_STRICT if strict is None else strict

    problems = config_problems(cfg)
    if problems and strict_mode:
        raise RuntimeError("; ".join(problems))
    for problem in problems:
        log.warning(problem)
    return True
