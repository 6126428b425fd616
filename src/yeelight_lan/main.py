"""Command-line entry point: run bulb sessions from a device file, or discover bulbs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, cast

import dotenv
import uvloop

from yeelight_lan.config import ControllerConfig, load_config
from yeelight_lan.const import (
    DISCOVERY_WINDOW_SECONDS,
    YEELIGHT_CONFIG_FILE,
    YEELIGHT_METRICS_PORT,
    YEELIGHT_VERSION,
)
from yeelight_lan.correlation import correlation_context, ensure_correlation_id
from yeelight_lan.discovery import discover
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.manager import BulbManager
from yeelight_lan.metrics import start_metrics_server
from yeelight_lan.protocol.exceptions import YeelightProtocolError
from yeelight_lan.structs import StateEvent

# Package root logger; library modules propagate into its handlers
logger = get_logger()


class _CLIArgs(Protocol):
    config: Path
    discover: bool
    discover_timeout: float
    metrics_port: int
    debug: bool
    env: Path | None


def parse_cli(argv: list[str] | None = None) -> _CLIArgs:
    """Parse CLI arguments for the controller process."""
    parser = argparse.ArgumentParser(description="Yeelight LAN controller")
    _ = parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path(YEELIGHT_CONFIG_FILE),
        help="Path to the YAML device file",
    )
    _ = parser.add_argument(
        "--discover",
        action="store_true",
        help="Search the network for bulbs, print them and exit",
    )
    _ = parser.add_argument(
        "--discover-timeout",
        type=float,
        default=DISCOVERY_WINDOW_SECONDS,
        help="Seconds to listen for discovery replies",
    )
    _ = parser.add_argument(
        "--metrics-port",
        type=int,
        default=YEELIGHT_METRICS_PORT,
        help="Serve Prometheus metrics on this port (0 disables)",
    )
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    return cast("_CLIArgs", cast("object", parser.parse_args(argv)))


def load_env_file(env_path: Path) -> bool:
    env_path = env_path.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return False
    loaded_any = dotenv.load_dotenv(env_path, override=True)
    if loaded_any:
        logger.info("Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})
    return loaded_any


def _log_event(bulb_label: str) -> Callable[[StateEvent], None]:
    def listener(event: StateEvent) -> None:
        value = getattr(event.value, "value", event.value)
        logger.debug(
            "State event",
            extra={"device": bulb_label, "attribute": event.name, "value": value, "source": event.source.value},
        )

    return listener


async def run_discovery(timeout: float) -> None:
    found = await discover(timeout)
    for address, bulb in sorted(found.items()):
        print(f"{address}:{bulb.port}\t{bulb.model or '-'}\t{bulb.name or '-'}\t{bulb.id or '-'}")
    if not found:
        print("No bulbs found")


async def run_controller(config: ControllerConfig) -> None:
    """Start a session per configured bulb and run until SIGINT/SIGTERM."""
    _ = ensure_correlation_id("controller")
    manager = BulbManager(transition_ms=config.transition_ms, poll_interval=config.poll_interval)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop.set)
    loop.add_signal_handler(signal.SIGTERM, stop.set)
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")

    for device in config.devices:
        try:
            bulb = await manager.create(device.address, device.name, device.transition_ms, device.poll_interval)
        except YeelightProtocolError as e:
            logger.error("Skipping device %s: %s", device.address, e)
            continue
        bulb.add_listener(_log_event(bulb.label))

    logger.info("Controller running", extra={"device_count": len(manager.list())})
    try:
        _ = await stop.wait()
    finally:
        logger.info("Shutting down Yeelight controller...")
        await manager.shutdown()


def main(argv: list[str] | None = None) -> int:
    args = parse_cli(argv)
    if args.env:
        _ = load_env_file(args.env)
    if args.debug:
        logger.set_level(logging.DEBUG)
        logger.info("Debug mode enabled via CLI argument")

    logger.info("Starting yeelight-lan", extra={"version": YEELIGHT_VERSION})
    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    with correlation_context("cli"):
        if args.discover:
            uvloop.run(run_discovery(args.discover_timeout))
            return 0

        config_file = args.config.expanduser().resolve()
        if not config_file.exists():
            logger.error("Configuration file not found", extra={"config_path": str(config_file)})
            return 1
        try:
            config = load_config(config_file)
        except YeelightProtocolError:
            return 1
        uvloop.run(run_controller(config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
