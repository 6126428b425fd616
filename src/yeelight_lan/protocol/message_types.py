"""Wire message definitions for the Yeelight JSON-RPC protocol.

Requests are ``{"id", "method", "params"}`` objects; the bulb answers with a
result, an error, or pushes an unsolicited ``props`` notification.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Methods sent by this client
METHOD_GET_PROP = "get_prop"
METHOD_SET_POWER = "set_power"
METHOD_TOGGLE = "toggle"
METHOD_SET_BRIGHT = "set_bright"
METHOD_SET_HSV = "set_hsv"
METHOD_SET_CT_ABX = "set_ct_abx"
METHOD_SET_SCENE = "set_scene"

# Unsolicited notification method
METHOD_PROPS = "props"

TRANSITION_SMOOTH = "smooth"


@dataclass(frozen=True)
class Request:
    """Outgoing JSON-RPC request."""

    id: int
    method: str
    params: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class CommandResult:
    """Success reply: ``{"id": 1, "result": ["ok"]}``."""

    id: int
    result: list[Any]


@dataclass(frozen=True)
class CommandError:
    """Error reply: ``{"id": 1, "error": {"code": -5000, "message": "..."}}``.

    ``id`` is None for the unsolicited errors some firmwares emit.
    """

    id: int | None
    code: int
    message: str


@dataclass(frozen=True)
class PropsNotification:
    """Unsolicited property push: ``{"method": "props", "params": {...}}``."""

    params: dict[str, Any]


InboundMessage = CommandResult | CommandError | PropsNotification
