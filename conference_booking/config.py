"""Runtime settings for the booking coordinator and console."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONFBOOK_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_ignore_empty=True,
        extra="ignore",
    )

    confirmation_grace_minutes: int = 60
    booking_id_strategy: Literal["counter", "uuid"] = "counter"

    log_level: str = "INFO"
    log_file: Path | None = None
    log_rotation: str = "1 day"
    log_retention: str = "30 days"

    data_dir: Path = Field(default=_PROJECT_ROOT / "data")

    @field_validator("confirmation_grace_minutes")
    @classmethod
    def grace_must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("confirmation_grace_minutes must be greater than 0")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_level(cls, value: str) -> str:
        return str(value).strip().upper()

    @property
    def confirmation_grace(self) -> timedelta:
        return timedelta(minutes=self.confirmation_grace_minutes)


@lru_cache
def get_settings() -> Settings:
    return Settings()
