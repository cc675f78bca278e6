"""Pydantic models for central YAML configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator, model_validator

from decisionflow.constants import SCHEMA_VERSION
from decisionflow.schemas.base import StrictSchemaModel
from decisionflow.schemas.enums import ProviderType, StorageBackend, normalize_provider_type


class StorageConfig(StrictSchemaModel):
    """Key-value substrate selection."""

    backend: StorageBackend = StorageBackend.SQLITE
    db_path: Path = Path(".sqlite/decisionflow.db")


class EngineConfig(StrictSchemaModel):
    """Execution engine controls."""

    validate_answers: bool = True
    max_automatic_steps: int = Field(default=1000, ge=1, le=100_000)


class ProviderConfig(StrictSchemaModel):
    """Subject field provider definition."""

    type: ProviderType = ProviderType.STORED
    base_url: str | None = None
    email_env: str = "JIRA_EMAIL"
    api_token_env: str = "JIRA_API_TOKEN"
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_provider(cls, value: str | ProviderType) -> ProviderType:
        return normalize_provider_type(value)

    @model_validator(mode="after")
    def validate_provider_requirements(self) -> "ProviderConfig":
        if self.type == ProviderType.JIRA and not self.base_url:
            raise ValueError("Jira providers must define base_url")
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return self


class LoggingConfig(StrictSchemaModel):
    """Root logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level: {value}")
        return normalized


class AppConfig(StrictSchemaModel):
    """Central application configuration."""

    schema_version: str = Field(default=SCHEMA_VERSION, min_length=1)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
