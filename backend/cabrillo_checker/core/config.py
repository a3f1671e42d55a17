from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import os

DEFAULT_ALIASES_PATH = Path(__file__).resolve().parents[1] / "data" / "multipliers.csv"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"), env_prefix="CABRILLO_", extra="ignore"
    )

    app_name: str = Field(default="cabrillo_checker")
    app_env: str = Field(default="dev")
    log_level: str = Field(default="INFO")
    version: str = Field(default="0.1.0")

    aliases_path: Path = Field(default=DEFAULT_ALIASES_PATH)
    contest_id: str = Field(default="NA-SPRINT-SSB")
    contest_start: datetime = Field(default=datetime(2019, 10, 5, 16, 0, tzinfo=timezone.utc))
    contest_end: datetime = Field(default=datetime(2019, 10, 6, 22, 0, tzinfo=timezone.utc))
    # Share of QSOs that must carry 59/599 before it is treated as the default serial
    placeholder_ratio: float = Field(default=0.75, ge=0.0, le=1.0)

    @field_validator("contest_start", "contest_end")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
