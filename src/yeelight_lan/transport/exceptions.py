"""Custom exception types for transport layer errors.

This module defines the exception hierarchy for connection-related errors,
extending the protocol exceptions.
"""

from __future__ import annotations

from yeelight_lan.protocol.exceptions import YeelightProtocolError


class ConfigError(YeelightProtocolError):
    """Endpoint configuration is unusable (missing or malformed address).

    Fatal to the connect attempt; no reconnect is scheduled until the session
    is reconfigured.

    Attributes:
        reason: Specific failure reason ("address_missing", "address_invalid")
        address: The offending address value
    """

    def __init__(self, reason: str, address: str | None = None) -> None:
        self.reason: str = reason
        self.address: str | None = address
        super().__init__(f"Configuration error: {reason} (address: {address!r})")


class YeelightConnectionError(YeelightProtocolError):
    """Connection state error (connect failed, connection lost, not connected).

    Note: Named YeelightConnectionError to avoid shadowing Python's built-in ConnectionError.

    Attributes:
        reason: Specific failure reason
        state: Connection state when error occurred
    """

    def __init__(self, reason: str, state: str = "unknown") -> None:
        self.reason: str = reason
        self.state: str = state
        super().__init__(f"Connection error: {reason} (state: {state})")
