"""Application configuration for the lead qualification service."""
from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, loaded once and handed to components."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    log_level: str = Field(default="INFO")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4000, gt=0)

    bland_api_key: str = Field(default="")
    bland_encrypted_key: str = Field(
        default="",
        validation_alias=AliasChoices("bland_encrypted_key", "encrypted_key"),
    )
    bland_base_url: str = Field(default="https://api.bland.ai")
    bland_timeout_seconds: float = Field(default=30.0, gt=0)

    database_url: str | None = Field(default=None)
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_user: str = Field(default="postgres")
    db_password: str = Field(default="")
    db_name: str = Field(default="lead_calls")
    database_ssl_required: bool = Field(default=False)

    agent_name: str = Field(default="Jonathan")
    agent_company: str = Field(default="Babou Cooperations")
    transfer_phone_number: str = Field(default="+18506084580")
    voice_id: int = Field(default=1)
    call_language: str = Field(default="en")
    call_temperature: float = Field(default=0.7, ge=0, le=1)
    record_calls: bool = Field(default=True)
    reduce_latency: bool = Field(default=False)

    poll_initial_delay_seconds: float = Field(default=30.0, gt=0)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    poll_backoff_factor: float = Field(default=1.0, ge=1)
    poll_max_interval_seconds: float = Field(default=300.0, gt=0)
    poll_max_attempts: int = Field(default=120, gt=0)
    poll_resume_on_startup: bool = Field(default=True)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def database_async_url(self) -> str:
        """SQLAlchemy URL for the async engine."""

        if self.database_url:
            url = self.database_url
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        auth = self.db_user
        if self.db_password:
            auth = f"{auth}:{self.db_password}"
        return f"postgresql+asyncpg://{auth}@{self.db_host}:{self.db_port}/{self.db_name}"

    def missing_provider_keys(self) -> list[str]:
        """Names of provider credentials that are not configured."""

        missing = []
        if not self.bland_api_key.strip():
            missing.append("BLAND_API_KEY")
        if not self.bland_encrypted_key.strip():
            missing.append("BLAND_ENCRYPTED_KEY")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
