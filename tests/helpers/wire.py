"""Helpers for inspecting what a session wrote to its socket."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock


def sent_requests(send: AsyncMock) -> list[dict[str, Any]]:
    """Decode every line passed to a mocked ``send(data)``."""
    requests: list[dict[str, Any]] = []
    for call in send.await_args_list:
        data: bytes = call.args[0]
        assert data.endswith(b"\r\n")
        requests.append(json.loads(data.decode("utf-8")))
    return requests


def sent_methods(send: AsyncMock) -> list[str]:
    return [request["method"] for request in sent_requests(send)]


def reply_ok(msg_id: int) -> str:
    return json.dumps({"id": msg_id, "result": ["ok"]})


def reply_error(msg_id: int | None, code: int = -5000, message: str = "general error") -> str:
    return json.dumps({"id": msg_id, "error": {"code": code, "message": message}})


def props_line(**params: Any) -> str:
    return json.dumps({"method": "props", "params": params})
