"""
envmeta_sdk.tier0_core.config
──────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic; a bad value raises
ConfigurationError when the config is first loaded, not mid-resolution.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from envmeta_sdk.tier0_core.errors import ConfigurationError


class EnvMetaConfig(BaseSettings):
    """
    Connection settings for the local agent and the meta environment.
    All env vars are prefixed with ENVMETA_.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Store ─────────────────────────────────────────────────────────────────
    local_agent: str = Field(default="http://localhost:8500", alias="ENVMETA_LOCAL_AGENT")
    meta_environment: str = Field(default="meta", alias="ENVMETA_META_ENVIRONMENT")
    http_timeout: float = Field(default=10.0, alias="ENVMETA_HTTP_TIMEOUT")
    acl_token: SecretStr | None = Field(default=None, alias="ENVMETA_ACL_TOKEN")

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="ENVMETA_LOG_LEVEL")
    log_format: str = Field(default="json", alias="ENVMETA_LOG_FORMAT")

    # ── Error reporting ───────────────────────────────────────────────────────
    error_backend: str = Field(default="none", alias="ENVMETA_ERROR_BACKEND")

    @field_validator("local_agent")
    @classmethod
    def validate_local_agent(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"local agent must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("meta_environment")
    @classmethod
    def validate_meta_environment(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("meta environment name must not be empty")
        return v.strip().lower()

    @field_validator("http_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"http timeout must be positive, got {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"log format must be json or console, got {v!r}")
        return v.lower()


@lru_cache(maxsize=1)
def get_config() -> EnvMetaConfig:
    """
    Return the singleton config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    try:
        return EnvMetaConfig()
    except PydanticValidationError as exc:
        raise ConfigurationError(
            "Invalid envmeta configuration.",
            detail=str(exc),
        ) from exc


def _reset_config() -> None:
    """For tests — clear the config cache."""
    get_config.cache_clear()


__all__ = ["EnvMetaConfig", "get_config"]
