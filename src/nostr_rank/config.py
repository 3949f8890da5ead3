"""Configuration loading for nostr-rank.

Settings live in a single YAML file. Every section is optional; missing
keys fall back to the defaults declared on the models below.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

CONFIG_ENV_VAR = "NOSTR_RANK_CONFIG"
DEFAULT_CONFIG_FILE = "nostr-rank.yaml"

# Upper bound on the websocket close handshake after each subscription
RELAY_CLOSE_TIMEOUT_SECONDS = 1.0


class RankingSettings(BaseModel):
    """PageRank tunables and persistence batching."""

    model_config = ConfigDict(extra="forbid")

    damping_factor: float = Field(default=0.85, gt=0.0, lt=1.0)
    max_iterations: int = Field(default=100, ge=1)
    convergence_threshold: float = Field(default=0.0001, gt=0.0)
    save_batch_size: int = Field(default=100, ge=1)


class FetchSettings(BaseModel):
    """Relay access settings."""

    model_config = ConfigDict(extra="forbid")

    relays: list[str] = Field(default_factory=lambda: ["wss://yabu.me"])
    batch_size: int = Field(default=10, ge=1)
    timeout_seconds: float = Field(default=5.0, gt=0.0)
    subscription_timeout_seconds: float = Field(default=3.5, gt=0.0)
    stream_page_size: int = Field(default=500, ge=1)

    @field_validator("relays")
    @classmethod
    def validate_relays(cls, relays: list[str]) -> list[str]:
        """Require at least one ws:// or wss:// relay URL."""
        if not relays:
            raise ValueError("at least one relay URL is required")
        for url in relays:
            if not url.startswith(("ws://", "wss://")):
                raise ValueError(f"relay URL must use ws:// or wss://: {url}")
        return relays

    @model_validator(mode="after")
    def validate_timeouts(self) -> "FetchSettings":
        """A relay query (connect, subscribe, close) must fit the fetch timeout.

        Otherwise the per-participant bound cuts the query off and the
        events it already collected are lost.
        """
        budget = self.subscription_timeout_seconds + RELAY_CLOSE_TIMEOUT_SECONDS
        if budget > self.timeout_seconds:
            raise ValueError(
                "subscription_timeout_seconds plus the "
                f"{RELAY_CLOSE_TIMEOUT_SECONDS:g}s close handshake must not exceed "
                f"timeout_seconds ({self.timeout_seconds:g})"
            )
        return self


class StorageSettings(BaseModel):
    """Persistent store location."""

    model_config = ConfigDict(extra="forbid")

    database_path: str = "nostr-rank.db"


class QuerySettings(BaseModel):
    """Windows and limits used by the query endpoints and collectors."""

    model_config = ConfigDict(extra="forbid")

    limit: int = Field(default=10, ge=1)
    recent_days: int = Field(default=30, ge=1)
    new_user_days: int = Field(default=30, ge=1)
    discovery_hours: int = Field(default=24, ge=1)


class ScheduleSettings(BaseModel):
    """Periodic job settings for the web server."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    interval_seconds: int = Field(default=3600, ge=1)


class AppConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    ranking: RankingSettings = Field(default_factory=RankingSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    queries: QuerySettings = Field(default_factory=QuerySettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path, then env var, then cwd default."""
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate configuration.

    Args:
        path: Optional explicit config file path

    Returns:
        Validated configuration; defaults when the file does not exist

    Raises:
        ValueError: If the file cannot be read, parsed or validated
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {config_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Failed to read file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e
