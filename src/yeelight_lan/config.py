"""YAML device file loading.

Example file::

    transition_ms: 400
    poll_interval: 5
    devices:
      - address: 192.168.1.50
        name: Desk lamp
      - address: 192.168.1.51
        poll_interval: 0
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, cast

import yaml
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from yeelight_lan.const import POLL_INTERVAL_CHOICES
from yeelight_lan.transport.exceptions import ConfigError

logger = logging.getLogger(__name__)


def _check_poll_interval(value: int | None) -> int | None:
    if value is not None and value not in POLL_INTERVAL_CHOICES:
        error_msg = f"poll_interval must be one of {POLL_INTERVAL_CHOICES}, got {value}"
        raise ValueError(error_msg)
    return value


PollInterval = Annotated[int | None, AfterValidator(_check_poll_interval)]


class DeviceConfig(BaseModel):
    """One ``devices:`` entry; unset values fall back to the file-level defaults."""

    model_config = ConfigDict(extra="ignore")

    address: str
    name: str | None = None
    transition_ms: int | None = Field(default=None, ge=0)
    poll_interval: PollInterval = None


class ControllerConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transition_ms: int | None = Field(default=None, ge=0)
    poll_interval: PollInterval = None
    devices: list[DeviceConfig] = Field(default_factory=list)


def load_config(path: Path) -> ControllerConfig:
    """Read and validate a device file.

    An empty file is an empty configuration.

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or fails validation

    """
    logger.debug("Parsing config file: %s", path)
    try:
        with path.open() as f:
            raw = cast("object", yaml.safe_load(f))
    except OSError as e:
        logger.exception("Failed to read config file: %s", path)
        raise ConfigError("config_unreadable") from e
    except yaml.YAMLError as e:
        logger.exception("Failed to parse config file: %s", path)
        raise ConfigError("config_invalid_yaml") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        logger.error("Invalid config structure: expected mapping at root")
        raise ConfigError("config_not_a_mapping")

    try:
        config = ControllerConfig.model_validate(raw)
    except ValidationError as e:
        logger.exception("Invalid config file: %s", path)
        raise ConfigError("config_validation_failed") from e

    logger.info("Parsed config: %d device(s)", len(config.devices))
    return config
