"""Per-bulb session: one endpoint, one connection, one canonical state.

YeelightBulb composes the connection manager, correlator, codec, recovery
policy, projection and command builder, and routes every inbound line to the
right one of them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from yeelight_lan.commands import CommandBuilder
from yeelight_lan.const import RECONNECT_DELAY_SECONDS, REFRESH_AFTER_CONNECT_SECONDS, SETTLE_DELAY_SECONDS
from yeelight_lan.correlation import correlation_context
from yeelight_lan.metrics import registry
from yeelight_lan.projection import StateProjection
from yeelight_lan.protocol import (
    METHOD_GET_PROP,
    METHOD_SET_SCENE,
    CommandError,
    CommandResult,
    PropsNotification,
    Request,
    YeelightProtocol,
)
from yeelight_lan.protocol.exceptions import MessageDecodeError
from yeelight_lan.recovery import FailureRecoveryPolicy, RetryGuard
from yeelight_lan.structs import (
    BulbState,
    Connectivity,
    Endpoint,
    EventSource,
    StateEvent,
    SwitchState,
)
from yeelight_lan.transport.connection_manager import ConnectionManager
from yeelight_lan.transport.correlator import CommandCorrelator
from yeelight_lan.transport.socket_abstraction import BulbConnection

logger = logging.getLogger(__name__)

Listener = Callable[[StateEvent], None]


class YeelightBulb:
    """Session for a single bulb.

    Two views of state are kept: ``state`` reflects the latest value from any
    source (optimistic writes included) and is what commands read, while
    ``confirmed_state`` only ever holds values the bulb itself reported.

    Capability methods return True when the request was written to the
    socket. They never wait for, or raise on, the bulb's answer; the outcome
    shows up later as DEVICE events and in ``confirmed_state``.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        label: str | None = None,
        device_id: str | None = None,
        connection_factory: Callable[[str, int], BulbConnection] = BulbConnection,
        correlator: CommandCorrelator | None = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        refresh_delay: float = REFRESH_AFTER_CONNECT_SECONDS,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ) -> None:
        self.endpoint: Endpoint = endpoint
        self.label: str = label or f"Yeelight {endpoint.address}"
        self.device_id: str | None = device_id
        self.state: BulbState = BulbState()
        self.confirmed_state: BulbState = BulbState()
        self.listeners: list[Listener] = []

        self.protocol = YeelightProtocol()
        self.correlator = correlator or CommandCorrelator()
        self.recovery = FailureRecoveryPolicy()
        self.projection = StateProjection(self.confirmed_state, self._apply_reported, self.label)
        self.commands = CommandBuilder(endpoint, self.state, self._send_command, self._apply_optimistic)
        self.connection = ConnectionManager(
            endpoint,
            self.handle_line,
            on_connectivity=self._on_connectivity,
            refresh=self._scheduled_refresh,
            poll=self._scheduled_refresh,
            on_reset=self._reset_session,
            connection_factory=connection_factory,
            reconnect_delay=reconnect_delay,
            refresh_delay=refresh_delay,
            settle_delay=settle_delay,
        )

    def __repr__(self) -> str:
        return f"<YeelightBulb {self.label!r} address={self.endpoint.address} state={self.connection.state.value}>"

    @property
    def metrics_label(self) -> str:
        return self.endpoint.address or self.label

    # ------------------------------------------------------------------
    # Listeners and state updates
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _emit(self, name: str, value: Any, source: EventSource, unit: str | None = None) -> None:
        event = StateEvent(name=name, value=value, source=source, unit=unit)
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("State listener failed", extra={"device": self.label, "event": name})

    def _apply_optimistic(self, name: str, value: Any, unit: str | None) -> None:
        setattr(self.state, name, value)
        self._emit(name, value, EventSource.OPTIMISTIC, unit)

    def _apply_reported(self, name: str, value: Any, unit: str | None) -> None:
        # confirmed_state was already updated by the projection
        setattr(self.state, name, value)
        self._emit(name, value, EventSource.DEVICE, unit)

    def _on_connectivity(self, connectivity: Connectivity) -> None:
        self.state.connection = connectivity
        self.confirmed_state.connection = connectivity
        logger.info("%s is %s", self.label, connectivity.value)
        self._emit("connection", connectivity, EventSource.SESSION)

    def _reset_session(self) -> None:
        self.correlator.reset()
        self.recovery.guard = RetryGuard.NORMAL

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _send_command(self, method: str, params: list[Any], props: list[str] | None = None) -> bool:
        pending = self.correlator.register(method, params, props)
        data = self.protocol.encode_request(Request(pending.msg_id, method, pending.params))
        logger.debug("→ %s", data.decode("utf-8").rstrip(), extra={"device": self.label})

        if not await self.connection.send(data):
            self.correlator.discard(pending.msg_id)
            registry.record_command_sent(self.metrics_label, method, "not_sent")
            return False

        registry.record_command_sent(self.metrics_label, method, "sent")
        registry.record_pending_commands(self.metrics_label, len(self.correlator))
        return True

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_line(self, line: str) -> None:
        """Process one complete inbound line."""
        with correlation_context("line"):
            logger.debug("← %s", line, extra={"device": self.label})

            # Any traffic proves the link is up
            if self.state.connection is not Connectivity.CONNECTED:
                self._on_connectivity(Connectivity.CONNECTED)

            try:
                message = self.protocol.decode_message(line)
            except MessageDecodeError as e:
                logger.warning(
                    "Dropping malformed line: %s",
                    e.reason,
                    extra={"device": self.label, "line": e.line_preview},
                )
                registry.record_decode_error(self.metrics_label, e.reason)
                return

            self._sweep_stale()

            if isinstance(message, CommandResult):
                registry.record_message_recv(self.metrics_label, "result")
                self._handle_result(message)
            elif isinstance(message, CommandError):
                registry.record_message_recv(self.metrics_label, "error")
                await self._handle_error(message)
            elif isinstance(message, PropsNotification):
                registry.record_message_recv(self.metrics_label, "props")
                self.projection.apply(message.params)

    def _sweep_stale(self) -> None:
        evicted = self.correlator.sweep()
        if evicted:
            registry.record_stale_evictions(self.metrics_label, len(evicted))
            registry.record_pending_commands(self.metrics_label, len(self.correlator))

    def _handle_result(self, message: CommandResult) -> None:
        self.recovery.on_success()
        pending = self.correlator.resolve(message.id)
        if pending is None:
            return

        registry.record_reply_latency(self.metrics_label, self.correlator.now() - pending.sent_at)
        if pending.method != METHOD_GET_PROP or not pending.props:
            return
        if len(pending.props) != len(message.result):
            logger.debug(
                "get_prop reply length mismatch",
                extra={"device": self.label, "expected": len(pending.props), "got": len(message.result)},
            )
            return
        self.projection.apply(dict(zip(pending.props, message.result, strict=True)))

    async def _handle_error(self, message: CommandError) -> None:
        if message.id is None:
            logger.debug("Ignoring unsolicited error", extra={"device": self.label, "code": message.code})
            return

        pending = self.correlator.resolve(message.id)
        registry.record_device_error(self.metrics_label, message.code)
        scene = self.recovery.on_failure(pending, message, self.state)
        if scene is None:
            return

        # set_scene powers the bulb on
        self._apply_optimistic("switch", SwitchState.ON, None)
        registry.record_compensation(self.metrics_label, pending.method if pending else "unknown")
        _ = await self._send_command(METHOD_SET_SCENE, scene)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        logger.info("Initializing %s", self.label, extra={"address": self.endpoint.address})
        await self.connection.initialize()

    async def installed(self) -> None:
        await self.initialize()

    async def updated(self) -> None:
        await self.initialize()

    async def configure(self) -> None:
        await self.initialize()

    async def reconfigure(self, endpoint: Endpoint) -> None:
        """Swap in a new endpoint and start a fresh session on it."""
        self.endpoint = endpoint
        self.commands.endpoint = endpoint
        self.connection.endpoint = endpoint
        await self.initialize()

    async def shutdown(self) -> None:
        await self.connection.shutdown()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def on(self) -> bool:
        with correlation_context("cmd"):
            return await self.commands.on()

    async def off(self) -> bool:
        with correlation_context("cmd"):
            return await self.commands.off()

    async def toggle(self) -> bool:
        with correlation_context("cmd"):
            return await self.commands.toggle()

    async def set_level(self, level: float, rate: float | None = None) -> bool:
        with correlation_context("cmd"):
            return await self.commands.set_level(level, rate)

    async def set_hue(self, hue: float) -> bool:
        with correlation_context("cmd"):
            return await self.commands.set_hue(hue)

    async def set_saturation(self, saturation: float) -> bool:
        with correlation_context("cmd"):
            return await self.commands.set_saturation(saturation)

    async def set_color(self, color: dict[str, Any]) -> bool:
        with correlation_context("cmd"):
            return await self.commands.set_color(color)

    async def set_color_temperature(
        self,
        temperature: float,
        level: float | None = None,
        rate: float | None = None,
    ) -> bool:
        with correlation_context("cmd"):
            return await self.commands.set_color_temperature(temperature, level, rate)

    async def refresh(self) -> bool:
        with correlation_context("cmd"):
            return await self.commands.refresh()

    async def poll(self) -> bool:
        with correlation_context("cmd"):
            return await self.commands.poll()

    async def _scheduled_refresh(self) -> None:
        _ = await self.commands.refresh()
