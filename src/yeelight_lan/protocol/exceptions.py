"""Custom exception types for Yeelight protocol errors.

This module defines the exception hierarchy for protocol-related errors.
Decoding raises instead of returning None; callers on the receive path log
and drop the offending line.
"""

from __future__ import annotations


class YeelightProtocolError(Exception):
    """Base exception for all Yeelight protocol errors."""


class MessageDecodeError(YeelightProtocolError):
    """Inbound line cannot be decoded into a known message.

    Raised when the line is not valid JSON, is not a JSON object, or lacks the
    fields required for a result, error or notification.

    Attributes:
        reason: Specific failure reason (e.g., "invalid_json", "missing_id")
        line_preview: First 120 characters of the offending line
    """

    def __init__(self, reason: str, line: str = "") -> None:
        self.reason: str = reason
        self.line_preview: str = line[:120] if line else ""
        super().__init__(f"Message decode failed: {reason}")


class DeviceError(YeelightProtocolError):
    """Application-level error reported by the bulb.

    Never raised to capability callers; used to carry the error through logs
    and the recovery policy.

    Attributes:
        code: Device error code (-5000 means the bulb is powered off)
        message: Device error message
        msg_id: Request id the error refers to (None for unsolicited errors)
    """

    def __init__(self, code: int, message: str, msg_id: int | None = None) -> None:
        self.code: int = code
        self.message: str = message
        self.msg_id: int | None = msg_id
        super().__init__(f"Device error {code}: {message} (id: {msg_id})")
