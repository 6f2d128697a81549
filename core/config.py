"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if the config is malformed.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.duration import parse_duration

logger = logging.getLogger(__name__)

# Default home directory for config.yaml and .env
DEFAULT_HOME = Path.home() / ".stonks"

_ENV_RE = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return match.group(0)  # leave unresolved
            return env_value
        return _ENV_RE.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def _check_duration(value: str) -> str:
    parse_duration(value)
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class EngineConfig(BaseModel):
    min_bars: int = Field(default=50, ge=2)
    risk_free_rate: float = 0.02
    trading_days: int = Field(default=252, gt=0)
    lookback: str = "365d"
    # Empty string disables the benchmark fetch; beta then uses the fallback.
    benchmark_symbol: str = "SPY"
    stop_floor_multiple: float = Field(default=1.0, gt=0)
    fetch_timeout: str = "30s"

    @field_validator("lookback", "fetch_timeout")
    @classmethod
    def check_durations(cls, value: str) -> str:
        return _check_duration(value)

    @property
    def lookback_window(self) -> timedelta:
        return parse_duration(self.lookback)

    @property
    def fetch_timeout_seconds(self) -> float:
        return parse_duration(self.fetch_timeout).total_seconds()


class ProviderConfig(BaseModel):
    enabled: bool = True
    api_key: str = ""


class MarketDataConfig(BaseModel):
    provider: str = "yahoo_finance"
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)


class SentimentConfig(BaseModel):
    # Empty string disables sentiment; readings are then neutral.
    provider: str = "headlines"
    max_headlines: int = Field(default=20, gt=0)


class CacheConfig(BaseModel):
    enabled: bool = True
    ttl: str = "5m"

    @field_validator("ttl")
    @classmethod
    def check_ttl(cls, value: str) -> str:
        return _check_duration(value)

    @property
    def ttl_seconds(self) -> float:
        return parse_duration(self.ttl).total_seconds()


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    sentiment: SentimentConfig = Field(default_factory=SentimentConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models
    """
    home = Path(os.environ.get("STONKS_HOME", str(DEFAULT_HOME))).expanduser()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    return AppConfig(**_resolve_env_vars(raw_config))
