from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .calculator import DEFAULT_SEARCH_HORIZON_YEARS, TransitionPolicy, as_utc

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ApiMode(str, Enum):
    INTERNATIONAL = "international"
    UK = "uk"
    GOVUK = "govuk"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DST_COUNTDOWN_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    MODE: ApiMode = ApiMode.INTERNATIONAL
    DEFAULT_COUNTRY: str = "GB"
    SEARCH_HORIZON_YEARS: int = Field(DEFAULT_SEARCH_HORIZON_YEARS, ge=1, le=50)
    TRANSITION_POLICY: TransitionPolicy = TransitionPolicy.EXACT

    # Frozen clock for manual testing ("time travel"); naive values are UTC
    FAKE_NOW: datetime | None = None

    GOVUK_URL: str = "https://www.gov.uk/when-do-the-clocks-change"
    GOVUK_TIMEOUT_S: float = 10.0
    GOVUK_CACHE_TTL_S: int = 3600

    LOG_LEVEL: str = "INFO"

    @field_validator("MODE", "TRANSITION_POLICY", mode="before")
    @classmethod
    def _lower_enum(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("DEFAULT_COUNTRY", mode="before")
    @classmethod
    def _upper_country(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def now(self) -> datetime:
        return as_utc(self.FAKE_NOW)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
