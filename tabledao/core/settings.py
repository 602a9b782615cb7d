"""
DAO instance configuration.

Pool sizing and timeouts fall back to environment variables so a deployment
can tune them without code changes:

- DATABASE_URL              store DSN (when `dsn` is not given)
- DAO_POOL_MIN_SIZE         default 1
- DAO_POOL_MAX_SIZE         default 5
- DAO_COMMAND_TIMEOUT_S     default 30
- DAO_KEEPALIVE_INTERVAL_S  default 3600 (0 disables the keepalive sweep)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError

DAO_INSTANCE_DEF = "def"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class DaoSettings(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    dsn: str | None = None
    min_size: int = Field(default_factory=lambda: _env_int("DAO_POOL_MIN_SIZE", 1), ge=0)
    max_size: int = Field(default_factory=lambda: _env_int("DAO_POOL_MAX_SIZE", 5), ge=1)
    command_timeout: float = Field(default_factory=lambda: _env_float("DAO_COMMAND_TIMEOUT_S", 30.0), gt=0)
    keepalive_interval: float = Field(
        default_factory=lambda: _env_float("DAO_KEEPALIVE_INTERVAL_S", 3600.0),
        ge=0,
    )
    # Log every statement at info level instead of debug.
    debug: bool = False
    logger: logging.Logger | None = None

    @classmethod
    def from_config(cls, config: DaoSettings | Mapping[str, Any]) -> DaoSettings:
        """
        Build settings from a mapping, failing with ConfigError on bad input.
        """
        if isinstance(config, DaoSettings):
            return config
        if not isinstance(config, Mapping):
            raise ConfigError(f"DAO config must be a mapping, got {type(config).__name__}.")

        name = str(config.get("name") or "").strip()
        if not name:
            raise ConfigError("You must specify a name for the DAO.")

        try:
            return cls.model_validate({**config, "name": name})
        except pydantic.ValidationError as e:
            raise ConfigError(f"Invalid DAO config: {e}") from e
