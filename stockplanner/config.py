from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    database_url: str = "sqlite:///./stockplanner.db"

    # planning defaults
    default_lead_time_days: int = Field(30, ge=1)
    velocity_window_days: int = Field(30, ge=1)
    buffer_days: int = Field(14, ge=0)
    target_days: int = Field(60, ge=1)
    at_risk_days: int = Field(7, ge=0)

    error_report_dir: str = "tmp/error_reports"

    log_level: str = "INFO"
    log_file: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
