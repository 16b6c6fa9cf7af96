from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "HR Leave Engine"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://hr_leave:hr_leave@db:5432/hr_leave"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Ledger writes that lose an optimistic version race are retried this many times.
    ledger_max_retries: int = 3

    # Which non-working days are excluded when charging a leave request.
    exclude_weekends_from_leave: bool = True
    exclude_holidays_from_leave: bool = True

    # Quotas used by bulk default assignment, in days per year.
    default_leave_quotas: dict[str, float] = {"annual": 21, "sick": 12, "personal": 12}


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
