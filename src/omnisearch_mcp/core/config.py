"""Configuration management for Omnisearch MCP.

This module provides configuration models and loading functionality using Pydantic
for validation and type safety. Provider credentials are deliberately kept out of
these models: they are read from a separate, read-only credential source
(see :func:`load_credential_source`).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DOTENV_LOADED = False


def _load_env_once() -> None:
    """Load environment variables from a .env file exactly once."""

    global _DOTENV_LOADED
    if not _DOTENV_LOADED:
        load_dotenv()
        _DOTENV_LOADED = True


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in configuration data."""

    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def load_credential_source(environ: Mapping[str, str] | None = None) -> Mapping[str, str]:
    """Return an immutable snapshot of the process credential source.

    The snapshot is taken once, after ``.env`` loading, and is what the
    credential probe inspects at startup.

    Args:
        environ: Mapping to snapshot instead of ``os.environ``

    Returns:
        Read-only mapping of configuration keys to values
    """
    if environ is None:
        _load_env_once()
        environ = os.environ
    return MappingProxyType(dict(environ))


class RetryPolicyConfig(BaseModel):
    """Configuration for outbound call retry behaviour."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of attempts (including the first request)",
    )
    backoff_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Initial delay in seconds before retrying",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the backoff delay after each failure",
    )
    max_backoff_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum delay cap between retries",
    )
    jitter: bool = Field(default=True, description="Randomise delays to avoid thundering herds")

    @model_validator(mode="after")
    def _check_cap(self) -> RetryPolicyConfig:
        if self.max_backoff_seconds < self.backoff_seconds:
            raise ValueError("max_backoff_seconds must be >= backoff_seconds")
        return self


class CircuitBreakerPolicyConfig(BaseModel):
    """Configuration for per-provider circuit breakers."""

    enabled: bool = Field(default=True, description="Enable circuit breakers")
    failure_threshold: int = Field(
        default=5, ge=1, description="Number of failures before opening the circuit"
    )
    success_threshold: int = Field(
        default=1, ge=1, description="Successes needed to close from half-open"
    )
    timeout_seconds: float = Field(
        default=60.0, ge=0.0, description="Seconds to wait before attempting recovery"
    )


class ResilienceConfig(BaseModel):
    """Timeouts, retries and limits applied around every provider call."""

    retry: RetryPolicyConfig = Field(
        default_factory=RetryPolicyConfig, description="Default retry policy"
    )
    total_deadline_seconds: float = Field(
        default=90.0,
        gt=0.0,
        description="Overall budget for one tool call including retries",
    )
    concurrency_policy: Literal["queue", "reject"] = Field(
        default="queue",
        description="What to do when a provider's concurrency cap is reached",
    )
    max_queue_size: int = Field(
        default=100,
        ge=0,
        description="Maximum callers waiting for a provider slot (queue policy)",
    )
    circuit_breaker: CircuitBreakerPolicyConfig = Field(
        default_factory=CircuitBreakerPolicyConfig,
        description="Circuit breaker settings",
    )
    rate_limiting_enabled: bool = Field(
        default=True, description="Enforce per-provider requests-per-minute quotas"
    )


class CacheConfig(BaseModel):
    """Configuration for the result cache."""

    enabled: bool = Field(default=True, description="Enable result caching")
    backend: Literal["memory", "redis"] = Field(default="memory", description="Cache backend")
    ttl_seconds: float = Field(default=3600.0, gt=0.0, description="Default entry TTL")
    max_entries: int = Field(default=10000, ge=1, description="Max entries (memory backend)")
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis URL (redis backend)"
    )
    key_prefix: str = Field(default="omnisearch", description="Key namespace (redis backend)")

    @field_validator("redis_url")
    @classmethod
    def _check_redis_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return value


class ProviderOverrideConfig(BaseModel):
    """Per-provider overrides applied to the static provider catalog."""

    timeout_seconds: float | None = Field(default=None, gt=0.0)
    max_concurrency: int | None = Field(default=None, ge=1)
    requests_per_minute: int | None = Field(default=None, ge=1)
    priority: int | None = Field(default=None, ge=0)
    cache_ttl_seconds: float | None = Field(default=None, gt=0.0)
    retry: RetryPolicyConfig | None = Field(default=None, description="Retry policy override")


class ServerConfig(BaseModel):
    """MCP server settings."""

    name: str = Field(default="omnisearch-mcp", description="Server name advertised to clients")
    transport: Literal["stdio", "sse", "streamable-http"] = Field(
        default="stdio", description="MCP transport"
    )
    host: str = Field(default="127.0.0.1", description="Bind host (HTTP transports)")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port (HTTP transports)")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    log_file: str | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")
    show_path: bool = Field(default=False, description="Show source path in console logs")

    @field_validator("level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level


class OmnisearchConfig(BaseSettings):
    """Main configuration for the Omnisearch MCP server."""

    model_config = SettingsConfigDict(
        env_prefix="OMNISEARCH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Result cache")
    resilience: ResilienceConfig = Field(
        default_factory=ResilienceConfig, description="Timeouts, retries and limits"
    )
    server: ServerConfig = Field(default_factory=ServerConfig, description="MCP server")
    providers: dict[str, ProviderOverrideConfig] = Field(
        default_factory=dict,
        description="Per-provider overrides keyed by provider identity",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> OmnisearchConfig:
        """Load configuration from a YAML file.

        Environment variables referenced as ``${VAR}`` are expanded.
        """
        _load_env_once()
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with config_path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

        return cls(**_expand_env_vars(data))

    @classmethod
    def load(cls, path: str | Path | None = None) -> OmnisearchConfig:
        """Load configuration from ``path`` when given, else from the environment."""
        if path is not None:
            return cls.from_yaml(path)
        _load_env_once()
        return cls()

    def to_yaml(self, path: str | Path) -> None:
        """Write the configuration to a YAML file."""
        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as fh:
            yaml.safe_dump(self.model_dump(mode="json"), fh, sort_keys=False)
