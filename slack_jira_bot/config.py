"""Pydantic-based configuration helpers for the Slack Jira bot."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator


class AppSettings(BaseModel):
    """Settings required to connect to Slack and Jira and run the dispatcher."""

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    app_token: str = Field(..., alias="SLACK_APP_TOKEN")
    jira_url: str = Field(..., alias="JIRA_URL")
    jira_username: str = Field(..., alias="JIRA_USERNAME")
    jira_api_token: str = Field(..., alias="JIRA_API_TOKEN")
    jira_project: str = Field(..., alias="JIRA_PROJECT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    grace_period_seconds: float = Field(180.0, alias="GRACE_PERIOD_SECONDS")
    filing_timeout_seconds: float = Field(30.0, alias="FILING_TIMEOUT_SECONDS")
    dedup_window_seconds: float = Field(3600.0, alias="DEDUP_WINDOW_SECONDS")
    health_port: int = Field(8888, alias="HEALTH_PORT")

    @field_validator("jira_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @field_validator("grace_period_seconds", "filing_timeout_seconds", "dedup_window_seconds")
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Durations must be greater than zero")
        return value


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        message = (
            "Missing required environment variables: "
            f"{_format_missing(missing)}"
        )
        raise RuntimeError(message) from exc
