"""Transport layer: TCP connection, lifecycle management and request correlation."""

from yeelight_lan.transport.connection_manager import ConnectionManager, ConnectionState, validate_address
from yeelight_lan.transport.correlator import CommandCorrelator
from yeelight_lan.transport.exceptions import ConfigError, YeelightConnectionError
from yeelight_lan.transport.socket_abstraction import BulbConnection

__all__ = [
    "BulbConnection",
    "CommandCorrelator",
    "ConfigError",
    "ConnectionManager",
    "ConnectionState",
    "YeelightConnectionError",
    "validate_address",
]
