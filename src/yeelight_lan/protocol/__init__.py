"""Yeelight protocol package - JSON-RPC line encoding, decoding, and framing.

Public API:
- Method constants (METHOD_*)
- Message dataclasses (Request, CommandResult, CommandError, PropsNotification)
- Protocol encoder/decoder (YeelightProtocol)
- Stream framer (LineFramer)
"""

from yeelight_lan.protocol.codec import YeelightProtocol
from yeelight_lan.protocol.line_framer import LineFramer
from yeelight_lan.protocol.message_types import (
    METHOD_GET_PROP,
    METHOD_PROPS,
    METHOD_SET_BRIGHT,
    METHOD_SET_CT_ABX,
    METHOD_SET_HSV,
    METHOD_SET_POWER,
    METHOD_SET_SCENE,
    METHOD_TOGGLE,
    TRANSITION_SMOOTH,
    CommandError,
    CommandResult,
    InboundMessage,
    PropsNotification,
    Request,
)

__all__ = [
    "METHOD_GET_PROP",
    "METHOD_PROPS",
    "METHOD_SET_BRIGHT",
    "METHOD_SET_CT_ABX",
    "METHOD_SET_HSV",
    "METHOD_SET_POWER",
    "METHOD_SET_SCENE",
    "METHOD_TOGGLE",
    "TRANSITION_SMOOTH",
    "CommandError",
    "CommandResult",
    "InboundMessage",
    "LineFramer",
    "PropsNotification",
    "Request",
    "YeelightProtocol",
]
