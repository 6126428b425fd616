"""Local-network control client for Yeelight WiFi bulbs."""

__version__ = "0.3.0"
