"""
Correlation IDs for tracing bulb traffic through the logs.

Every inbound line, capability call and timer firing runs in its own scope.
IDs are ``<origin>-<8 hex>`` (``line-3fa9c1d2``, ``cmd-07be41aa``,
``poll-5c0e9b13``) so the human log format shows at a glance what started the
work a log line belongs to.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "current_correlation_id",
    "ensure_correlation_id",
    "new_correlation_id",
]

_current: contextvars.ContextVar[str | None] = contextvars.ContextVar("yeelight_correlation_id", default=None)


def new_correlation_id(origin: str = "op") -> str:
    """Build a fresh ID tagged with what triggered the work."""
    return f"{origin}-{uuid.uuid4().hex[:8]}"


def current_correlation_id() -> str | None:
    return _current.get()


@contextmanager
def correlation_context(origin: str = "op", correlation_id: str | None = None) -> Generator[str]:
    """
    Run the enclosed block under one correlation ID.

    The contextvar token is reset on exit, so nested scopes and concurrent
    tasks each see their own ID.

    Args:
        origin: Tag for generated IDs ("line", "cmd", "refresh", ...)
        correlation_id: Use this ID instead of generating one

    Yields:
        The ID in effect inside the block
    """
    active = correlation_id or new_correlation_id(origin)
    token = _current.set(active)
    try:
        yield active
    finally:
        _current.reset(token)


def ensure_correlation_id(origin: str = "op") -> str:
    """Return the current ID, binding a new one first if none is set."""
    active = _current.get()
    if active is None:
        active = new_correlation_id(origin)
        _ = _current.set(active)
    return active
