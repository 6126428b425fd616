"""Capability operations translated into wire commands.

Every operation updates the local state optimistically and then writes its
request; none of them wait for the bulb to answer.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from yeelight_lan.colors import clamp_kelvin, clamp_percent, hub_hue_to_device, round_half_up
from yeelight_lan.const import MIN_TRANSITION_MS, PROPERTY_NAMES
from yeelight_lan.protocol.message_types import (
    METHOD_GET_PROP,
    METHOD_SET_BRIGHT,
    METHOD_SET_CT_ABX,
    METHOD_SET_HSV,
    METHOD_SET_POWER,
    METHOD_TOGGLE,
    TRANSITION_SMOOTH,
)
from yeelight_lan.structs import BulbState, ColorMode, Endpoint, SwitchState

logger = logging.getLogger(__name__)

# (method, params, props) -> True if written
Send = Callable[[str, list[Any], list[str] | None], Awaitable[bool]]
# (attribute, value, unit)
Apply = Callable[[str, Any, str | None], None]


class CommandBuilder:
    """Builds and sends the requests behind each capability.

    Args:
        endpoint: Supplies the default transition duration
        state: Latest known state (read for the axis an operation leaves alone)
        send: Registers and writes one request
        apply: Records an optimistic state change
    """

    def __init__(self, endpoint: Endpoint, state: BulbState, send: Send, apply: Apply) -> None:
        self.endpoint = endpoint
        self.state = state
        self._send = send
        self._apply = apply

    def resolve_duration(self, rate: float | None = None) -> int:
        """Transition duration in ms: explicit rate (seconds) wins over the endpoint default."""
        if rate is not None:
            return max(MIN_TRANSITION_MS, round_half_up(rate * 1000))
        return max(MIN_TRANSITION_MS, self.endpoint.transition_ms)

    async def on(self) -> bool:
        self._apply("switch", SwitchState.ON, None)
        return await self._send(METHOD_SET_POWER, ["on", TRANSITION_SMOOTH, self.resolve_duration()], None)

    async def off(self) -> bool:
        self._apply("switch", SwitchState.OFF, None)
        return await self._send(METHOD_SET_POWER, ["off", TRANSITION_SMOOTH, self.resolve_duration()], None)

    async def toggle(self) -> bool:
        # Unknown power is treated as off, so the optimistic value is on
        flipped = SwitchState.OFF if self.state.switch is SwitchState.ON else SwitchState.ON
        self._apply("switch", flipped, None)
        return await self._send(METHOD_TOGGLE, [], None)

    async def set_level(self, level: float, rate: float | None = None) -> bool:
        """Set brightness; 0 is sent as power off since the bulb rejects brightness 0."""
        bright = clamp_percent(round_half_up(level))
        if bright == 0:
            logger.debug("Level 0 requested, switching off")
            return await self.off()
        self._apply("level", bright, "%")
        return await self._send(METHOD_SET_BRIGHT, [bright, TRANSITION_SMOOTH, self.resolve_duration(rate)], None)

    async def set_hue(self, hue: float) -> bool:
        hub_hue = clamp_percent(round_half_up(hue))
        saturation = self.state.saturation if self.state.saturation is not None else 100
        self._apply("hue", hub_hue, None)
        self._apply("color_mode", ColorMode.HSV, None)
        return await self._send_hsv(hub_hue, saturation)

    async def set_saturation(self, saturation: float) -> bool:
        sat = clamp_percent(round_half_up(saturation))
        hub_hue = self.state.hue if self.state.hue is not None else 0
        self._apply("saturation", sat, "%")
        self._apply("color_mode", ColorMode.HSV, None)
        return await self._send_hsv(hub_hue, sat)

    async def set_color(self, color: dict[str, Any]) -> bool:
        """Set hue and saturation in one command, then level if the map has one.

        Args:
            color: Map with optional ``hue``, ``saturation`` and ``level`` keys

        """
        hue = color.get("hue")
        saturation = color.get("saturation")
        hub_hue = clamp_percent(round_half_up(hue)) if hue is not None else 0
        sat = clamp_percent(round_half_up(saturation)) if saturation is not None else 100
        self._apply("hue", hub_hue, None)
        self._apply("saturation", sat, "%")
        self._apply("color_mode", ColorMode.HSV, None)
        sent = await self._send_hsv(hub_hue, sat)

        level = color.get("level")
        if level is not None:
            _ = await self.set_level(level)
        return sent

    async def set_color_temperature(
        self,
        temperature: float,
        level: float | None = None,
        rate: float | None = None,
    ) -> bool:
        kelvin = clamp_kelvin(round_half_up(temperature))
        self._apply("color_temperature", kelvin, "K")
        self._apply("color_mode", ColorMode.CT, None)
        sent = await self._send(METHOD_SET_CT_ABX, [kelvin, TRANSITION_SMOOTH, self.resolve_duration(rate)], None)
        if level is not None:
            _ = await self.set_level(level)
        return sent

    async def refresh(self) -> bool:
        """Query every projected property."""
        props = list(PROPERTY_NAMES)
        return await self._send(METHOD_GET_PROP, list(props), props)

    async def poll(self) -> bool:
        return await self.refresh()

    async def _send_hsv(self, hub_hue: int, saturation: int) -> bool:
        params = [hub_hue_to_device(hub_hue), saturation, TRANSITION_SMOOTH, self.resolve_duration()]
        return await self._send(METHOD_SET_HSV, params, None)
