"""
Runtime settings for the entry points (API server, demo script).

Values come from environment variables; `.env` files are loaded by the entry
points with python-dotenv before `load_settings()` is called. The validation
core itself takes no configuration: its thresholds are fixed constants.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Settings(BaseModel):
    log_level: str = "INFO"
    max_upload_bytes: int = Field(default=1_048_576, gt=0)
    min_text_length: int = Field(default=10, ge=1)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def load_settings() -> Settings:
    """Build Settings from ``IDV_*`` environment variables."""
    overrides = {
        field: os.environ[f"IDV_{field.upper()}"]
        for field in Settings.model_fields
        if f"IDV_{field.upper()}" in os.environ
    }
    return Settings.model_validate(overrides)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
