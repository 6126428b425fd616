"""Projection of device-reported properties onto canonical bulb state."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from yeelight_lan.colors import (
    clamp_kelvin,
    device_hue_to_hub,
    hsv_color_name,
    kelvin_color_name,
    rgb_to_hue_saturation,
)
from yeelight_lan.structs import BulbState, ColorMode, SwitchState

logger = logging.getLogger(__name__)

_COLOR_MODES: dict[int, ColorMode] = {1: ColorMode.RGB, 2: ColorMode.CT, 3: ColorMode.HSV}

# (attribute, value, unit)
Emit = Callable[[str, Any, str | None], None]


def safe_int(value: object) -> int | None:
    """Coerce a device value to int; blank, None, NaN, infinity or non-numeric text gives None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class StateProjection:
    """Applies a property map (get_prop reply or props push) to a BulbState.

    Keys are handled independently and in a fixed order so that a map with
    both ``rgb`` and ``hue`` ends with the explicit hue. Unknown keys are
    ignored, as is any value that cannot be coerced.
    """

    def __init__(self, state: BulbState, emit: Emit, label: str = "bulb") -> None:
        self.state = state
        self.emit = emit
        self.label = label

    def _set(self, name: str, value: Any, unit: str | None = None) -> None:
        setattr(self.state, name, value)
        shown = value.value if isinstance(value, Enum) else value
        logger.info("%s %s is %s%s", self.label, name, shown, unit or "")
        self.emit(name, value, unit)

    def apply(self, props: Mapping[str, Any]) -> None:
        if "power" in props:
            self._project_power(props["power"])
        if "bright" in props:
            self._project_bright(props["bright"])
        if "ct" in props:
            self._project_ct(props["ct"])
        if "rgb" in props:
            self._project_rgb(props["rgb"])
        if "hue" in props:
            self._project_hue(props["hue"])
        if "sat" in props:
            self._project_sat(props["sat"])
        if "color_mode" in props:
            self._project_color_mode(props["color_mode"])

    def _project_power(self, value: object) -> None:
        switch = SwitchState.ON if str(value).strip() == "on" else SwitchState.OFF
        self._set("switch", switch)

    def _project_bright(self, value: object) -> None:
        level = safe_int(value)
        if level is None:
            logger.debug("Ignoring uncoercible bright", extra={"value": value})
            return
        self._set("level", level, "%")

    def _project_ct(self, value: object) -> None:
        kelvin = safe_int(value)
        if not kelvin:
            return
        kelvin = clamp_kelvin(kelvin)
        self._set("color_temperature", kelvin, "K")
        self._set("color_name", kelvin_color_name(kelvin))

    def _project_rgb(self, value: object) -> None:
        rgb = safe_int(value)
        if not rgb:
            return
        hue, saturation = rgb_to_hue_saturation(rgb)
        self._set("hue", hue)
        self._set("saturation", saturation, "%")
        self._set("color_name", hsv_color_name(hue, saturation))

    # A zero hue or saturation is what bulbs in CT mode report for "not
    # applicable", so it never overwrites the last real HSV setting. The cost:
    # device hue 0 is also pure red, and a red reported as hue 0 (by a props
    # push or a get_prop reply) is never projected. Red set via rgb still is.
    def _project_hue(self, value: object) -> None:
        device_hue = safe_int(value)
        if not device_hue:
            return
        self._set("hue", device_hue_to_hub(device_hue))

    def _project_sat(self, value: object) -> None:
        saturation = safe_int(value)
        if not saturation:
            return
        self._set("saturation", saturation, "%")

    def _project_color_mode(self, value: object) -> None:
        code = safe_int(value)
        if code is None:
            return
        mode = _COLOR_MODES.get(code, ColorMode.CT)
        self._set("color_mode", mode)
