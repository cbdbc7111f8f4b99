"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from stockfeed.core.exceptions import ConfigError
from stockfeed.core.models import StorageBackend, SymbolSpec, resolve_universe

_API_KEY_ENV = "ALPHA_VANTAGE_API_KEY"


class AlphaVantageConfig(BaseModel):
    """Primary provider (Alpha Vantage) access configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    base_url: str = "https://www.alphavantage.co"
    request_timeout: float = 20.0
    max_retry_attempts: int = 5

    @field_validator("max_retry_attempts")
    @classmethod
    def attempts_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_retry_attempts must be >= 1")
        return v

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_key(cls, v: object) -> str | None:
        # env auto-cast may hand us an int for all-digit keys
        if v is None or not str(v).strip():
            return None
        return str(v).strip()


class YahooConfig(BaseModel):
    """Fallback provider (Yahoo Finance chart API) configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://query1.finance.yahoo.com"
    request_timeout: float = 20.0


class IngestConfig(BaseModel):
    """Bulk ingest behaviour: universe, window, and throttling."""

    model_config = ConfigDict(frozen=True)

    symbols: list[str] = []
    history_days: int = 30
    inter_request_delay_ms: int = 15000
    freshness_hours: float = 24.0
    refresh_interval_minutes: int = 15

    @field_validator("symbols", mode="before")
    @classmethod
    def split_symbols(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if v is None:
            return []
        # env auto-cast hands us an int for an all-digit ticker such as 700
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            return [s.strip().upper() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [str(s) if isinstance(s, int) and not isinstance(s, bool) else s for s in v]
        return v

    @field_validator("history_days")
    @classmethod
    def history_days_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("history_days must be >= 1")
        return v

    @field_validator("inter_request_delay_ms")
    @classmethod
    def delay_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("inter_request_delay_ms must be >= 0")
        return v

    @field_validator("freshness_hours")
    @classmethod
    def freshness_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("freshness_hours must be > 0")
        return v

    @field_validator("refresh_interval_minutes")
    @classmethod
    def interval_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("refresh_interval_minutes must be >= 1")
        return v

    def universe(self) -> list[SymbolSpec]:
        """The configured symbol list, in ingest order."""
        return resolve_universe(self.symbols)


class StorageConfig(BaseModel):
    """Price store configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StorageBackend = StorageBackend.CSV
    data_dir: str = "./data/stocks"
    sqlite_path: str = "./data/stocks/stock_data.db"


class StockfeedConfig(BaseModel):
    """Root configuration for the entire stockfeed system."""

    model_config = ConfigDict(frozen=True)

    alpha_vantage: AlphaVantageConfig = AlphaVantageConfig()
    yahoo: YahooConfig = YahooConfig()
    ingest: IngestConfig = IngestConfig()
    storage: StorageConfig = StorageConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "STOCKFEED_",
) -> StockfeedConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (STOCKFEED_INGEST__HISTORY_DAYS, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        STOCKFEED_INGEST__HISTORY_DAYS=60  ->  ingest.history_days = 60

    The conventional ALPHA_VANTAGE_API_KEY variable supplies the API key
    when neither the YAML file nor a prefixed variable sets one.
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        _apply_api_key_fallback(merged)
        return StockfeedConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("STOCKFEED_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from STOCKFEED_CONFIG not found: {env_path}",
                context={"field": "STOCKFEED_CONFIG", "value": env_path},
            )
        return p

    default = Path("stockfeed.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # Skip the CONFIG env var itself
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _apply_api_key_fallback(merged: dict) -> None:
    """Fill alpha_vantage.api_key from ALPHA_VANTAGE_API_KEY if unset."""
    env_key = os.environ.get(_API_KEY_ENV)
    if not env_key:
        return
    section = merged.get("alpha_vantage")
    if not isinstance(section, dict):
        section = {}
        merged["alpha_vantage"] = section
    if not section.get("api_key"):
        section["api_key"] = env_key


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
