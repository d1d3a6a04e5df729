"""
Configuration for birdlearn

Settings are layered the same way everywhere in the application:
1. Defaults declared on the models below
2. An optional YAML or JSON config file (``BIRDLEARN_CONFIG_PATH``)
3. Environment variables and ``.env`` (highest priority), prefixed with
   ``BIRDLEARN_`` and using ``__`` for nesting, e.g.
   ``BIRDLEARN_MATCHER__CLOSE_MATCH_THRESHOLD=0.85``.

The scheduling policy tables (level weights, recency bands, promotion
thresholds, review intervals) are product rules and live in
``birdlearn.scheduling.policy``, not here.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class SchedulerConfig(BaseModel):
    """Scheduler tunables"""
    default_batch_size: int = Field(default=5, ge=1)
    streak_lookback: int = Field(default=10, ge=1, le=10)
    stats_window_days: int = Field(default=7, ge=1)
    next_items_limit: int = Field(default=5, ge=1)
    recent_activity_limit: int = Field(default=10, ge=1)


class MatcherConfig(BaseModel):
    """Answer matcher tunables"""
    close_match_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    partial_match_min_ratio: float = Field(default=0.6, ge=0.0, le=1.0)
    abbreviation_similarity: float = Field(default=0.9, ge=0.0, le=1.0)
    suggestion_min_similarity: float = Field(default=0.3, ge=0.0, le=1.0)
    max_suggestions: int = Field(default=3, ge=0)
    min_length_ratio: float = Field(default=0.3, ge=0.0)
    max_length_ratio: float = Field(default=2.0, ge=0.0)
    min_letter_ratio: float = Field(default=0.7, ge=0.0, le=1.0)


class DatabaseConfig(BaseModel):
    """Database configuration"""
    url: str = "sqlite+aiosqlite:///./birdlearn.db"
    echo: bool = False
    pool_size: int = Field(default=5, ge=1)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")
    file_path: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class EnvironmentConfig(BaseModel):
    """Environment configuration"""
    env: str = "development"
    debug: bool = False

    @field_validator('env')
    @classmethod
    def validate_env(cls, v: str) -> str:
        valid_envs = ['development', 'testing', 'staging', 'production']
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()


class AppConfig(BaseSettings):
    """Main application configuration"""
    model_config = SettingsConfigDict(
        env_prefix="BIRDLEARN_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "birdlearn"
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)


class ConfigLoader:
    """
    Configuration loader.

    File values are passed as init arguments, which pydantic-settings ranks
    above defaults; environment variables are then layered on top by
    re-reading them after the merge.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("BIRDLEARN_CONFIG_PATH")
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        env_config = AppConfig()
        merged = _deep_merge(file_config, env_config.model_dump(exclude_unset=True, by_alias=True))
        self._config = AppConfig(**merged) if merged else env_config
        return self._config

    def _load_from_file(self, path: str) -> Dict[str, Any]:
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        try:
            with open(path, 'r') as f:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    return yaml.safe_load(f) or {}
                if path.suffix.lower() == '.json':
                    return json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return {}

        logger.warning(f"Unsupported config file format: {path.suffix}")
        return {}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


config_loader = ConfigLoader()
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the loaded configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = config_loader.load()
    return _config


def reload_config(config_path: Optional[str] = None) -> AppConfig:
    """Discard the cached configuration and load it again."""
    global config_loader, _config
    config_loader = ConfigLoader(config_path)
    _config = config_loader.load()
    return _config
