from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Trial Insight Dashboard"
    ENV: str = "development"
    DEBUG: bool = True

    DATASET_PATH: Optional[str] = None
    DEFAULT_PROFILE_ID: str = "profile1"
    LOADING_PHASE_SECONDS: float = 2.0
    SUMMARY_SEED: Optional[int] = None

    @field_validator("DATASET_PATH")
    @classmethod
    def validate_dataset_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not v.lower().endswith(".json"):
            raise ValueError("DATASET_PATH must point to a .json file.")
        return v

    @field_validator("LOADING_PHASE_SECONDS")
    @classmethod
    def validate_phase_seconds(cls, v: float) -> float:
        if v < 0:
            raise ValueError("LOADING_PHASE_SECONDS must be >= 0.")
        return v

    @property
    def strict_invariants(self) -> bool:
        """Contract checks raise during development, log only in production."""
        return self.DEBUG and self.ENV.lower() not in {"production", "prod"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
