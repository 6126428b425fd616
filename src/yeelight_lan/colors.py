"""Unit conversions between the device and hub scales, and color naming."""

from __future__ import annotations

import colorsys
from decimal import ROUND_HALF_UP, Decimal

from yeelight_lan.const import CT_MAX, CT_MIN, HUE_DEVICE_SCALE

_HUE_SCALE = Decimal(HUE_DEVICE_SCALE)

# Upper bounds (inclusive) of each kelvin band
_KELVIN_NAMES: tuple[tuple[int, str], ...] = (
    (2000, "Candlelight"),
    (2500, "Warm White"),
    (3000, "Incandescent"),
    (3500, "Soft White"),
    (4000, "Neutral White"),
    (5000, "Cool White"),
    (6000, "Daylight"),
)

# Upper bounds (exclusive) of each hue band on the 0-100 scale
_HUE_NAMES: tuple[tuple[int, str], ...] = (
    (4, "Red"),
    (13, "Orange"),
    (21, "Yellow"),
    (46, "Green"),
    (63, "Cyan"),
    (79, "Blue"),
    (88, "Violet"),
    (96, "Pink"),
)


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def clamp_percent(value: int) -> int:
    return clamp(value, 0, 100)


def clamp_kelvin(value: int) -> int:
    return clamp(value, CT_MIN, CT_MAX)


def hub_hue_to_device(hue: int) -> int:
    """Hub hue (0-100) to device hue (0-359)."""
    return round_half_up(Decimal(hue) * _HUE_SCALE)


def device_hue_to_hub(hue: int) -> int:
    """Device hue (0-359) to hub hue (0-100)."""
    return round_half_up(Decimal(hue) / _HUE_SCALE)


def rgb_to_hue_saturation(rgb: int) -> tuple[int, int]:
    """Split a packed 0xRRGGBB integer and return (hue, saturation) on 0-100."""
    red = (rgb >> 16) & 0xFF
    green = (rgb >> 8) & 0xFF
    blue = rgb & 0xFF
    hue, saturation, _value = colorsys.rgb_to_hsv(red / 255.0, green / 255.0, blue / 255.0)
    return round_half_up(hue * 100), round_half_up(saturation * 100)


def kelvin_color_name(kelvin: int) -> str:
    for upper, name in _KELVIN_NAMES:
        if kelvin <= upper:
            return name
    return "Bright Daylight"


def hsv_color_name(hue: int, saturation: int) -> str:
    """Name a hub-scale hue; low saturation reads as white whatever the hue."""
    if saturation < 10:
        return "White"
    for upper, name in _HUE_NAMES:
        if hue < upper:
            return name
    return "Red"
