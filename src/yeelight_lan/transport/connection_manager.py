"""Connection lifecycle management for one bulb.

This module implements the ConnectionManager class which owns the single TCP
connection to a bulb, drives the Idle/Connecting/Connected/Disconnected state
machine, dispatches inbound lines, and runs the session timers
(fixed-delay reconnect, post-connect refresh, periodic poll).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from collections.abc import Awaitable, Callable
from enum import Enum

from yeelight_lan.const import (
    RECONNECT_DELAY_SECONDS,
    REFRESH_AFTER_CONNECT_SECONDS,
    SETTLE_DELAY_SECONDS,
)
from yeelight_lan.correlation import correlation_context
from yeelight_lan.metrics import registry
from yeelight_lan.structs import Connectivity, Endpoint
from yeelight_lan.transport.exceptions import ConfigError, YeelightConnectionError
from yeelight_lan.transport.socket_abstraction import BulbConnection

logger = logging.getLogger(__name__)

_DOTTED_QUAD = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")


def validate_address(address: str | None) -> str:
    """Return ``address`` if it is a literal dotted quad, raise ConfigError otherwise."""
    if not address:
        raise ConfigError("address_missing", address)
    if not _DOTTED_QUAD.match(address):
        raise ConfigError("address_invalid", address)
    return address


class ConnectionState(Enum):
    """Connection state enumeration."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionManager:
    """Owns the persistent connection and timers of one bulb session.

    **Single connection**: ``connect()`` is serialized by ``_connect_lock`` and
    returns early when already connected, so overlapping initialize/reconnect
    paths never open a second socket to the bulb (the bulb accepts at most 4).

    **Timers**: reconnect, refresh and poll are asyncio tasks. ``initialize()``
    and ``shutdown()`` cancel every one of them before anything new is
    scheduled, so re-initializing never leaves a duplicate polling loop.

    **Reconnect**: any transport failure schedules exactly one reconnect after
    a fixed delay; there is no backoff. A configuration error (missing or
    malformed address) schedules nothing.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        line_handler: Callable[[str], Awaitable[None]],
        on_connectivity: Callable[[Connectivity], None] | None = None,
        refresh: Callable[[], Awaitable[None]] | None = None,
        poll: Callable[[], Awaitable[None]] | None = None,
        on_reset: Callable[[], None] | None = None,
        connection_factory: Callable[[str, int], BulbConnection] = BulbConnection,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        refresh_delay: float = REFRESH_AFTER_CONNECT_SECONDS,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ) -> None:
        """Initialize connection manager.

        Args:
            endpoint: Address, port and poll interval of the bulb
            line_handler: Coroutine called with every complete inbound line
            on_connectivity: Called on every connected/disconnected transition
            refresh: Coroutine run once shortly after each successful connect
            poll: Coroutine run every ``endpoint.poll_interval`` minutes
            on_reset: Called during initialize, after the old socket is closed
            connection_factory: Builds the TCP connection (host, port)
            reconnect_delay: Fixed delay before reconnecting, in seconds
            refresh_delay: Delay between connect and the resync refresh
            settle_delay: Pause between closing the old socket and reconnecting

        """
        self.endpoint: Endpoint = endpoint
        self.line_handler: Callable[[str], Awaitable[None]] = line_handler
        self.on_connectivity: Callable[[Connectivity], None] | None = on_connectivity
        self.refresh: Callable[[], Awaitable[None]] | None = refresh
        self.poll: Callable[[], Awaitable[None]] | None = poll
        self.on_reset: Callable[[], None] | None = on_reset
        self.connection_factory: Callable[[str, int], BulbConnection] = connection_factory
        self.reconnect_delay: float = reconnect_delay
        self.refresh_delay: float = refresh_delay
        self.settle_delay: float = settle_delay

        self.state: ConnectionState = ConnectionState.IDLE
        self.conn: BulbConnection | None = None
        self._state_lock: asyncio.Lock = asyncio.Lock()  # Protect state transitions
        self._connect_lock: asyncio.Lock = asyncio.Lock()  # One connect attempt at a time

        self.reader_task: asyncio.Task[None] | None = None
        self.reconnect_task: asyncio.Task[None] | None = None
        self.refresh_task: asyncio.Task[None] | None = None
        self.poll_task: asyncio.Task[None] | None = None

    @property
    def device(self) -> str:
        """Label used for metrics and logs."""
        return self.endpoint.address or "unconfigured"

    async def _set_state(self, state: ConnectionState) -> None:
        async with self._state_lock:
            self.state = state
            registry.record_connection_state(self.device, state.value)

    def _notify(self, connectivity: Connectivity) -> None:
        if self.on_connectivity is not None:
            self.on_connectivity(connectivity)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Tear everything down, then connect and schedule polling.

        Safe to call repeatedly: timers and the socket from the previous call
        are always gone before new ones are created.
        """
        logger.debug("→ Initializing connection", extra={"device": self.device})
        await self._cancel_timers()
        await self._close_connection()
        if self.on_reset is not None:
            self.on_reset()
        await asyncio.sleep(self.settle_delay)

        _ = await self.connect()
        self._schedule_poll()
        logger.debug("✓ Connection initialized", extra={"device": self.device, "state": self.state.value})

    async def connect(self) -> bool:
        """Open the connection to the bulb.

        Returns:
            True if connected, False on a configuration error (nothing
            scheduled) or a transport error (reconnect scheduled)

        """
        try:
            address = validate_address(self.endpoint.address)
        except ConfigError as e:
            logger.error(
                "Skipping connect: %s",
                e,
                extra={"reason": e.reason, "address": e.address},
            )
            return False

        async with self._connect_lock:
            if self.state == ConnectionState.CONNECTED and self.conn is not None and self.conn.is_connected:
                logger.debug("Already connected", extra={"device": self.device})
                return True

            await self._set_state(ConnectionState.CONNECTING)
            conn = self.connection_factory(address, self.endpoint.port)
            self.conn = conn

            if not await conn.connect():
                logger.error(
                    "✗ Connect to %s:%d failed",
                    address,
                    self.endpoint.port,
                    extra={"device": self.device},
                )
                await self._handle_transport_failure("connect_failed")
                return False

            await self._set_state(ConnectionState.CONNECTED)
            self._notify(Connectivity.CONNECTED)
            self.reader_task = asyncio.create_task(self._read_loop(conn))
            self._schedule_refresh()
            logger.info("✓ Connected to bulb", extra={"device": self.device})
            return True

    async def send(self, data: bytes) -> bool:
        """Write one encoded line; a write failure is treated as a lost connection.

        Returns:
            True if the bytes were written, False otherwise (never raises)

        """
        conn = self.conn
        if conn is None or self.state != ConnectionState.CONNECTED:
            logger.warning(
                "Dropping command, bulb not connected",
                extra={"device": self.device, "state": self.state.value},
            )
            return False

        if await conn.send(data):
            return True

        await self._handle_transport_failure("send_failed")
        return False

    async def shutdown(self) -> None:
        """Cancel every timer and close the socket; nothing is rescheduled."""
        logger.info("Shutting down connection", extra={"device": self.device})
        await self._cancel_timers()
        await self._close_connection()
        await self._set_state(ConnectionState.IDLE)

    def is_connected(self) -> bool:
        """Check if connection is established (best effort, may be stale)."""
        return self.state == ConnectionState.CONNECTED

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    async def _handle_transport_failure(self, reason: str) -> None:
        """Mark disconnected, close idempotently, schedule one reconnect."""
        error = YeelightConnectionError(reason, self.state.value)
        logger.warning("%s", error, extra={"device": self.device, "reason": reason})
        await self._set_state(ConnectionState.DISCONNECTED)
        self._notify(Connectivity.DISCONNECTED)
        await self._close_connection()
        self._schedule_reconnect(reason)

    async def _close_connection(self) -> None:
        await self._cancel_task(self.reader_task)
        self.reader_task = None
        conn, self.conn = self.conn, None
        if conn is not None:
            await conn.close()

    # ------------------------------------------------------------------
    # Reader
    # ------------------------------------------------------------------

    async def _read_loop(self, conn: BulbConnection) -> None:
        """Hand every inbound line to ``line_handler`` until the socket ends.

        A handler error is logged and the loop continues; the connection is
        only considered lost on EOF or a socket error.
        """
        try:
            async for line in conn.lines():
                try:
                    await self.line_handler(line)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception(
                        "Unexpected error handling inbound line",
                        extra={"device": self.device},
                    )
        except asyncio.CancelledError:
            logger.debug("Reader cancelled (clean shutdown)", extra={"device": self.device})
            raise

        if conn is self.conn:
            await self._handle_transport_failure("connection_closed")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _schedule_reconnect(self, reason: str) -> None:
        current = asyncio.current_task()
        if self.reconnect_task is not None and not self.reconnect_task.done() and self.reconnect_task is not current:
            logger.debug("Reconnect already scheduled", extra={"device": self.device, "reason": reason})
            return

        logger.info(
            "Reconnecting in %.0fs",
            self.reconnect_delay,
            extra={"device": self.device, "reason": reason},
        )
        registry.record_reconnection(self.device, reason)
        self.reconnect_task = asyncio.create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        with correlation_context("reconnect"):
            _ = await self.connect()

    def _schedule_refresh(self) -> None:
        if self.refresh is None:
            return
        current = asyncio.current_task()
        if self.refresh_task is not None and not self.refresh_task.done() and self.refresh_task is not current:
            _ = self.refresh_task.cancel()
        self.refresh_task = asyncio.create_task(self._run_after(self.refresh_delay, self.refresh, "refresh"))

    def _schedule_poll(self) -> None:
        if self.poll is None:
            return
        interval = self.endpoint.poll_interval
        if interval == 0:
            logger.debug("Polling disabled", extra={"device": self.device})
            return
        self.poll_task = asyncio.create_task(self._poll_loop(interval * 60.0, self.poll))

    async def _run_after(self, delay: float, action: Callable[[], Awaitable[None]], name: str) -> None:
        await asyncio.sleep(delay)
        with correlation_context(name):
            try:
                await action()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled %s failed", name, extra={"device": self.device})

    async def _poll_loop(self, period: float, action: Callable[[], Awaitable[None]]) -> None:
        while True:
            await self._run_after(period, action, "poll")

    async def _cancel_timers(self) -> None:
        for attr in ("reconnect_task", "refresh_task", "poll_task"):
            await self._cancel_task(getattr(self, attr))
            setattr(self, attr, None)

    @staticmethod
    async def _cancel_task(task: asyncio.Task[None] | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        _ = task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
