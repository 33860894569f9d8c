from __future__ import annotations

import os
from typing import Any, List

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatrelay.logging import get_logger

logger = get_logger(__name__)


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


class Settings(BaseModel):
    """Runtime settings for the relay and its external collaborators."""

    supabase_url: str | None = env_field(None, "SUPABASE_URL")
    supabase_key: str | None = env_field(None, "SUPABASE_KEY")
    openai_api_key: str | None = env_field(None, "OPENAI_API_KEY")
    openai_org_id: str | None = env_field(None, "OPENAI_ORG_ID")
    openai_project_id: str | None = env_field(None, "OPENAI_PROJECT_ID")
    openai_base_url: str | None = env_field(None, "OPENAI_BASE_URL")
    completion_model: str = env_field("gpt-3.5-turbo-0125", "COMPLETION_MODEL")
    conversations_table: str = env_field("Conversations", "CONVERSATIONS_TABLE")
    messages_table: str = env_field("Messages", "MESSAGES_TABLE")
    host: str = env_field("0.0.0.0", "HOST")
    port: int = env_field(3000, "PORT", ge=1, le=65535)
    cors_allow_origins: List[str] = env_field(
        ["*"],
        "CORS_ALLOW_ORIGINS",
        description="Comma separated list of allowed origins",
    )
    use_memory_backends: bool = env_field(
        False,
        "USE_MEMORY_BACKENDS",
        description="Serve auth and chat storage from process memory instead of Supabase.",
    )
    test_mode: bool = env_field(False, "TEST_MODE")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        return cls(**merged)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings.from_env()
    return _settings_cache


_settings_cache: Settings | None = None


def reset_settings_cache() -> None:
    """Clear cached settings so future calls re-read the environment."""

    global _settings_cache
    _settings_cache = None
