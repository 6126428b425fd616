"""Compensation for commands the bulb rejects while it is powered off.

A bulb that is off answers ``set_ct_abx``, ``set_hsv`` and ``set_bright``
with error -5000. ``set_scene`` is accepted in that state and powers the
bulb on, so each rejected command maps onto one equivalent scene.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from yeelight_lan.colors import clamp_kelvin, hub_hue_to_device
from yeelight_lan.const import DEFAULT_CT_KELVIN, DEVICE_OFF_ERROR_CODE
from yeelight_lan.protocol.exceptions import DeviceError
from yeelight_lan.protocol.message_types import (
    METHOD_SET_BRIGHT,
    METHOD_SET_CT_ABX,
    METHOD_SET_HSV,
    CommandError,
)
from yeelight_lan.structs import BulbState, ColorMode, PendingCommand

logger = logging.getLogger(__name__)

COMPENSABLE_METHODS: frozenset[str] = frozenset({METHOD_SET_CT_ABX, METHOD_SET_HSV, METHOD_SET_BRIGHT})


class RetryGuard(Enum):
    """Whether a compensating command is in flight."""

    NORMAL = "normal"
    AWAITING_COMPENSATION = "awaiting_compensation"


class FailureRecoveryPolicy:
    """Decides whether an error reply earns a compensating ``set_scene``.

    At most one compensation per failure episode: once a scene has been
    issued the guard stays AWAITING_COMPENSATION until the next reply of any
    kind, and a failure seen in that state only clears it.
    """

    def __init__(self) -> None:
        self.guard: RetryGuard = RetryGuard.NORMAL

    def on_success(self) -> None:
        if self.guard is RetryGuard.AWAITING_COMPENSATION:
            logger.debug("Compensation confirmed, guard cleared")
        self.guard = RetryGuard.NORMAL

    def on_failure(
        self,
        pending: PendingCommand | None,
        error: CommandError,
        state: BulbState,
    ) -> list[Any] | None:
        """Handle an error reply.

        Args:
            pending: The request the error answers (None if it went stale)
            error: The decoded error
            state: Current bulb state, used to fill in scene values

        Returns:
            ``set_scene`` params to send, or None when nothing should be sent.
            When params are returned the guard is already AWAITING_COMPENSATION.

        """
        if self.guard is RetryGuard.AWAITING_COMPENSATION:
            logger.warning(
                "Compensating command failed, giving up",
                extra={"code": error.code, "error_message": error.message},
            )
            self.guard = RetryGuard.NORMAL
            return None

        if pending is None:
            logger.warning(
                "Error for unknown or expired request",
                extra={"msg_id": error.id, "code": error.code, "error_message": error.message},
            )
            return None

        if error.code != DEVICE_OFF_ERROR_CODE or pending.method not in COMPENSABLE_METHODS:
            logger.warning(
                "Command %s failed: %s",
                pending.method,
                DeviceError(error.code, error.message, error.id),
                extra={"msg_id": pending.msg_id, "params": pending.params},
            )
            return None

        scene = self.compensating_params(pending.method, pending.params, state)
        self.guard = RetryGuard.AWAITING_COMPENSATION
        logger.info(
            "Bulb is off, retrying %s as set_scene",
            pending.method,
            extra={"msg_id": pending.msg_id, "scene": scene},
        )
        return scene

    @staticmethod
    def compensating_params(method: str, params: list[Any], state: BulbState) -> list[Any]:
        """Build the ``set_scene`` params equivalent to ``method(params)``."""
        if method == METHOD_SET_CT_ABX:
            level = state.level if state.level is not None else 100
            return ["ct", params[0], level]
        if method == METHOD_SET_HSV:
            return ["hsv", params[0], params[1]]
        if method == METHOD_SET_BRIGHT:
            if state.color_mode is ColorMode.HSV:
                hue = state.hue if state.hue is not None else 0
                saturation = state.saturation if state.saturation is not None else 100
                return ["hsv", hub_hue_to_device(hue), saturation]
            kelvin = state.color_temperature if state.color_temperature is not None else DEFAULT_CT_KELVIN
            return ["ct", clamp_kelvin(kelvin), params[0]]
        error_msg = f"{method} has no set_scene equivalent"
        raise ValueError(error_msg)
