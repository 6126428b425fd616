import os

from yeelight_lan import __version__

__all__ = [
    "CONNECT_TIMEOUT_SECONDS",
    "CT_MAX",
    "CT_MIN",
    "DEFAULT_CT_KELVIN",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_TRANSITION_MS",
    "DEVICE_OFF_ERROR_CODE",
    "DISCOVERY_GROUP",
    "DISCOVERY_PORT",
    "DISCOVERY_SEARCH_TARGET",
    "DISCOVERY_WINDOW_SECONDS",
    "HUE_DEVICE_SCALE",
    "MIN_TRANSITION_MS",
    "POLL_INTERVAL_CHOICES",
    "PROPERTY_NAMES",
    "RECONNECT_DELAY_SECONDS",
    "REFRESH_AFTER_CONNECT_SECONDS",
    "SETTLE_DELAY_SECONDS",
    "STALE_COMMAND_SECONDS",
    "YEELIGHT_CONFIG_FILE",
    "YEELIGHT_DEBUG",
    "YEELIGHT_LOG_FORMAT",
    "YEELIGHT_LOG_HUMAN_OUTPUT",
    "YEELIGHT_LOG_JSON_FILE",
    "YEELIGHT_METRICS_PORT",
    "YEELIGHT_PORT",
    "YEELIGHT_VERSION",
    "WRITE_TIMEOUT_SECONDS",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", "on")
YEELIGHT_VERSION: str = __version__

# Device protocol
YEELIGHT_PORT: int = 55443
CT_MIN: int = 1700
CT_MAX: int = 6500
DEFAULT_CT_KELVIN: int = 4000
HUE_DEVICE_SCALE: str = "3.59"  # device hue units per hub hue unit (0-359 vs 0-100)
DEVICE_OFF_ERROR_CODE: int = -5000
PROPERTY_NAMES: tuple[str, ...] = ("power", "bright", "ct", "rgb", "hue", "sat", "color_mode")

# Session timing
RECONNECT_DELAY_SECONDS: float = 30.0
REFRESH_AFTER_CONNECT_SECONDS: float = 2.0
SETTLE_DELAY_SECONDS: float = 0.5
CONNECT_TIMEOUT_SECONDS: float = 5.0
WRITE_TIMEOUT_SECONDS: float = 5.0
STALE_COMMAND_SECONDS: float = 30.0
MIN_TRANSITION_MS: int = 30
POLL_INTERVAL_CHOICES: tuple[int, ...] = (0, 1, 5, 10, 30)  # minutes, 0 disables polling

# Discovery
DISCOVERY_GROUP: str = "239.255.255.250"
DISCOVERY_PORT: int = 1982
DISCOVERY_SEARCH_TARGET: str = "wifi_bulb"
DISCOVERY_WINDOW_SECONDS: float = 5.0


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DEFAULT_TRANSITION_MS: int = _env_int("YEELIGHT_TRANSITION_MS", 400)
_poll_interval = _env_int("YEELIGHT_POLL_INTERVAL", 5)
DEFAULT_POLL_INTERVAL: int = _poll_interval if _poll_interval in POLL_INTERVAL_CHOICES else 5

YEELIGHT_DEBUG: bool = os.environ.get("YEELIGHT_DEBUG", "0").casefold() in YES_ANSWER
YEELIGHT_LOG_FORMAT: str = os.environ.get("YEELIGHT_LOG_FORMAT", "human").casefold()
YEELIGHT_LOG_JSON_FILE: str | None = os.environ.get("YEELIGHT_LOG_JSON_FILE") or None
YEELIGHT_LOG_HUMAN_OUTPUT: str = os.environ.get("YEELIGHT_LOG_HUMAN_OUTPUT", "stdout")
YEELIGHT_CONFIG_FILE: str = os.environ.get("YEELIGHT_CONFIG_FILE", "devices.yaml")
YEELIGHT_METRICS_PORT: int = _env_int("YEELIGHT_METRICS_PORT", 0)
