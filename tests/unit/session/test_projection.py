"""Unit tests for StateProjection."""

from __future__ import annotations

from typing import Any

import pytest

from yeelight_lan.projection import StateProjection, safe_int
from yeelight_lan.structs import BulbState, ColorMode, SwitchState


class Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any, str | None]] = []

    def __call__(self, name: str, value: Any, unit: str | None) -> None:
        self.events.append((name, value, unit))

    def names(self) -> list[str]:
        return [name for name, _value, _unit in self.events]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def projection(recorder: Recorder) -> StateProjection:
    return StateProjection(BulbState(), recorder, "Desk")


class TestSafeInt:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(5, 5), ("80", 80), (" 42 ", 42), ("", None), ("   ", None), (None, None), ("abc", None), ("4.5", None), (3.9, 3), (float("inf"), None), (float("-inf"), None), (float("nan"), None), (True, None)],
    )
    def test_coercion(self, value: object, expected: int | None):
        assert safe_int(value) == expected


class TestPower:
    @pytest.mark.parametrize(("power", "switch"), [("on", SwitchState.ON), ("off", SwitchState.OFF), ("", SwitchState.OFF), ("ON", SwitchState.OFF)])
    def test_power(self, projection: StateProjection, power: str, switch: SwitchState):
        projection.apply({"power": power})

        assert projection.state.switch is switch


class TestBright:
    def test_bright_passes_through(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"bright": "80"})

        assert projection.state.level == 80
        assert recorder.events == [("level", 80, "%")]

    def test_uncoercible_bright_dropped(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"bright": "n/a"})

        assert projection.state.level is None
        assert recorder.events == []

    def test_non_finite_bright_does_not_block_later_keys(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"power": "on", "bright": float("inf"), "ct": "3000"})

        assert projection.state.level is None
        assert projection.state.color_temperature == 3000
        assert recorder.names() == ["switch", "color_temperature", "color_name"]


class TestColorTemperature:
    def test_ct_sets_kelvin_and_name(self, projection: StateProjection):
        projection.apply({"ct": "4000"})

        assert projection.state.color_temperature == 4000
        assert projection.state.color_name == "Neutral White"

    @pytest.mark.parametrize(("reported", "kelvin"), [("1000", 1700), ("9000", 6500)])
    def test_ct_clamped(self, projection: StateProjection, reported: str, kelvin: int):
        projection.apply({"ct": reported})

        assert projection.state.color_temperature == kelvin

    @pytest.mark.parametrize("reported", ["0", 0, "", "warm"])
    def test_ct_zero_or_uncoercible_ignored(self, projection: StateProjection, recorder: Recorder, reported: object):
        projection.state.color_temperature = 2700

        projection.apply({"ct": reported})

        assert projection.state.color_temperature == 2700
        assert recorder.events == []

    def test_every_kelvin_in_range_projects_to_itself(self, projection: StateProjection):
        for kelvin in range(1700, 6501, 50):
            projection.apply({"ct": str(kelvin)})
            assert projection.state.color_temperature == kelvin


class TestRgb:
    def test_rgb_sets_hue_saturation_and_name(self, projection: StateProjection):
        projection.apply({"rgb": str(0x0000FF)})

        assert projection.state.hue == 67
        assert projection.state.saturation == 100
        assert projection.state.color_name == "Blue"

    def test_rgb_zero_ignored(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"rgb": "0"})

        assert recorder.events == []


class TestHueSaturation:
    def test_hue_converted_to_hub_scale(self, projection: StateProjection):
        projection.apply({"hue": "180"})

        assert projection.state.hue == 50

    def test_sat_passes_through(self, projection: StateProjection):
        projection.apply({"sat": "35"})

        assert projection.state.saturation == 35

    def test_zero_hue_and_sat_leave_state_unchanged(self, projection: StateProjection, recorder: Recorder):
        projection.state.hue = 40
        projection.state.saturation = 60

        projection.apply({"hue": "0", "sat": "0"})

        assert projection.state.hue == 40
        assert projection.state.saturation == 60
        assert recorder.events == []

    def test_explicit_hue_applied_after_rgb(self, projection: StateProjection):
        projection.apply({"hue": "36", "rgb": str(0xFF0000)})

        assert projection.state.hue == 10


class TestColorMode:
    @pytest.mark.parametrize(("mode", "expected"), [("1", ColorMode.RGB), ("2", ColorMode.CT), ("3", ColorMode.HSV), ("7", ColorMode.CT), ("0", ColorMode.CT)])
    def test_color_mode(self, projection: StateProjection, mode: str, expected: ColorMode):
        projection.apply({"color_mode": mode})

        assert projection.state.color_mode is expected


class TestApply:
    def test_unknown_keys_ignored(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"flowing": "0", "nl_br": "10"})

        assert recorder.events == []

    def test_full_map(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"power": "on", "bright": "80", "ct": "4000", "rgb": "0", "hue": "0", "sat": "0", "color_mode": "2"})

        assert projection.state == BulbState(
            switch=SwitchState.ON,
            level=80,
            color_temperature=4000,
            color_mode=ColorMode.CT,
            color_name="Neutral White",
        )
        assert recorder.names() == ["switch", "level", "color_temperature", "color_name", "color_mode"]

    def test_idempotent(self, projection: StateProjection):
        props = {"power": "off", "bright": "20", "ct": "2700"}
        projection.apply(props)
        first = projection.state.model_copy()

        projection.apply(props)

        assert projection.state == first

    def test_uncoercible_color_mode_ignored(self, projection: StateProjection, recorder: Recorder):
        projection.apply({"color_mode": "x"})

        assert projection.state.color_mode is None
        assert recorder.events == []
