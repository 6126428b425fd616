"""Yeelight JSON-RPC codec.

Encodes requests into CRLF-terminated JSON lines and classifies inbound lines
as a result, an error, or a props notification.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from yeelight_lan.protocol.exceptions import MessageDecodeError
from yeelight_lan.protocol.message_types import (
    METHOD_PROPS,
    CommandError,
    CommandResult,
    InboundMessage,
    PropsNotification,
    Request,
)

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class YeelightProtocol:
    """Encoder/decoder for Yeelight wire messages.

    Stateless; one instance may be shared between sessions.

    Example:
        >>> protocol = YeelightProtocol()
        >>> protocol.encode_request(Request(1, "toggle", []))
        b'{"id": 1, "method": "toggle", "params": []}\\r\\n'
    """

    @staticmethod
    def encode_request(request: Request) -> bytes:
        """Serialize a request as one JSON object followed by CRLF."""
        payload = {"id": request.id, "method": request.method, "params": list(request.params)}
        return (json.dumps(payload) + LINE_TERMINATOR).encode("utf-8")

    def decode_message(self, line: str | bytes) -> InboundMessage:
        """Decode one inbound line.

        Args:
            line: A single line without its terminator (surrounding whitespace allowed)

        Returns:
            CommandResult, CommandError or PropsNotification

        Raises:
            MessageDecodeError: If the line is not a recognised message

        """
        text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
        text = text.strip()
        if not text:
            raise MessageDecodeError("empty_line")

        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as e:
            raise MessageDecodeError("invalid_json", text) from e

        if not isinstance(data, dict):
            raise MessageDecodeError("not_an_object", text)

        if "result" in data:
            return self._decode_result(data, text)
        if "error" in data:
            return self._decode_error(data, text)
        if data.get("method") == METHOD_PROPS:
            return self._decode_notification(data, text)

        raise MessageDecodeError("unknown_message", text)

    @staticmethod
    def _decode_result(data: dict[str, Any], text: str) -> CommandResult:
        msg_id = data.get("id")
        if not _is_int(msg_id):
            raise MessageDecodeError("missing_id", text)
        result = data["result"]
        if not isinstance(result, list):
            raise MessageDecodeError("result_not_a_list", text)
        return CommandResult(id=msg_id, result=result)

    @staticmethod
    def _decode_error(data: dict[str, Any], text: str) -> CommandError:
        msg_id = data.get("id")
        if msg_id is not None and not _is_int(msg_id):
            raise MessageDecodeError("invalid_id", text)
        error = data["error"]
        if not isinstance(error, dict):
            raise MessageDecodeError("error_not_an_object", text)
        code = error.get("code")
        if not _is_int(code):
            raise MessageDecodeError("missing_error_code", text)
        message = error.get("message")
        return CommandError(id=msg_id, code=code, message=str(message) if message is not None else "")

    @staticmethod
    def _decode_notification(data: dict[str, Any], text: str) -> PropsNotification:
        params = data.get("params")
        if not isinstance(params, dict):
            raise MessageDecodeError("params_not_an_object", text)
        return PropsNotification(params=params)
