"""Shared data structures: endpoint configuration, canonical bulb state, events."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from yeelight_lan.const import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TRANSITION_MS,
    POLL_INTERVAL_CHOICES,
    YEELIGHT_PORT,
)


class SwitchState(Enum):
    """Bulb power state."""

    ON = "on"
    OFF = "off"


class ColorMode(Enum):
    """Active color mode as reported by the bulb (color_mode 1/2/3)."""

    RGB = "RGB"
    CT = "CT"
    HSV = "HSV"


class Connectivity(Enum):
    """Value of the ``connection`` attribute."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class EventSource(Enum):
    """Who produced a state change."""

    OPTIMISTIC = "optimistic"  # local write before the bulb confirmed
    DEVICE = "device"  # reply or props notification from the bulb
    SESSION = "session"  # connection lifecycle


class Endpoint(BaseModel):
    """Network address and per-session defaults for one bulb.

    Immutable; reconfiguring a session means building a new Endpoint and
    re-initializing. The address is validated at connect time, not here, so
    a session can exist for a bulb whose address is not configured yet.
    """

    model_config = ConfigDict(frozen=True)

    address: str | None = None
    port: int = YEELIGHT_PORT
    transition_ms: int = DEFAULT_TRANSITION_MS
    poll_interval: int = DEFAULT_POLL_INTERVAL  # minutes, 0 disables polling

    @field_validator("address")
    @classmethod
    def _strip_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("poll_interval")
    @classmethod
    def _check_poll_interval(cls, value: int) -> int:
        if value not in POLL_INTERVAL_CHOICES:
            error_msg = f"poll_interval must be one of {POLL_INTERVAL_CHOICES}, got {value}"
            raise ValueError(error_msg)
        return value


class BulbState(BaseModel):
    """Canonical, unit-normalized bulb state.

    ``None`` means the attribute has not been reported or set yet.
    """

    switch: SwitchState | None = None
    level: int | None = None  # percent
    color_temperature: int | None = None  # kelvin, 1700-6500
    hue: int | None = None  # hub scale 0-100
    saturation: int | None = None  # percent
    color_mode: ColorMode | None = None
    color_name: str | None = None
    connection: Connectivity | None = None


@dataclass(frozen=True)
class StateEvent:
    """One attribute change, delivered to session listeners."""

    name: str
    value: Any
    source: EventSource
    unit: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class PendingCommand:
    """Tracks a request awaiting its reply.

    Attributes:
        msg_id: Request id on the wire
        method: JSON-RPC method name
        params: Original params (needed to build compensating commands)
        props: Queried property names for get_prop, zipped with the result
        sent_at: Correlator clock reading (time.monotonic()) when the request was registered
    """

    msg_id: int
    method: str
    params: list[Any]
    sent_at: float
    props: list[str] | None = None


class DiscoveredBulb(BaseModel):
    """Metadata parsed from a discovery reply."""

    address: str
    port: int = YEELIGHT_PORT
    id: str | None = None
    model: str | None = None
    name: str | None = None
    power: str | None = None
    ct: str | None = None
