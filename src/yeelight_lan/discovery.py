"""Multicast discovery of bulbs on the local network.

Bulbs answer an SSDP-style ``M-SEARCH`` for ``ST: wifi_bulb`` sent to
239.255.255.250:1982 with a unicast reply whose ``Location`` header reads
``yeelight://<ip>:<port>``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import socket

from yeelight_lan.const import (
    DISCOVERY_GROUP,
    DISCOVERY_PORT,
    DISCOVERY_SEARCH_TARGET,
    DISCOVERY_WINDOW_SECONDS,
)
from yeelight_lan.metrics import registry
from yeelight_lan.structs import DiscoveredBulb

logger = logging.getLogger(__name__)

_LOCATION = re.compile(r"yeelight://([0-9.]+):(\d+)", re.IGNORECASE)
_INFO_HEADERS = ("id", "model", "name", "power", "ct")


def build_search_request() -> bytes:
    lines = [
        "M-SEARCH * HTTP/1.1",
        f"HOST: {DISCOVERY_GROUP}:{DISCOVERY_PORT}",
        'MAN: "ssdp:discover"',
        f"ST: {DISCOVERY_SEARCH_TARGET}",
    ]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("ascii")


def parse_discovery_response(text: str) -> tuple[str, DiscoveredBulb] | None:
    """Parse one discovery reply.

    Header names are matched case-insensitively. Replies without a
    ``yeelight://`` location are not from a bulb and give None.

    Returns:
        (address, metadata) or None

    """
    address: str | None = None
    port: int | None = None
    info: dict[str, str] = {}

    for line in re.split(r"\r\n|\n", text):
        name, sep, value = line.partition(":")
        if not sep:
            continue
        key = name.strip().lower()
        if key == "location":
            match = _LOCATION.search(value)
            if match:
                address = match.group(1)
                port = int(match.group(2))
        elif key in _INFO_HEADERS:
            info[key] = value.strip()

    if address is None or port is None:
        return None
    return address, DiscoveredBulb(address=address, port=port, **info)


class _DiscoveryProtocol(asyncio.DatagramProtocol):
    """Collects replies into ``found`` for the duration of the window."""

    def __init__(self, found: dict[str, DiscoveredBulb]) -> None:
        self.found = found

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        text = data.decode("utf-8", errors="replace")
        parsed = parse_discovery_response(text)
        if parsed is None:
            registry.record_discovery_response("ignored")
            return
        address, bulb = parsed
        registry.record_discovery_response("bulb")
        if address not in self.found:
            logger.info(
                "Discovered bulb at %s",
                address,
                extra={"model": bulb.model, "bulb_name": bulb.name, "bulb_id": bulb.id, "sender": addr[0]},
            )
        self.found[address] = bulb

    def error_received(self, exc: Exception) -> None:
        logger.warning("Discovery socket error: %s", exc)


async def discover(timeout: float = DISCOVERY_WINDOW_SECONDS) -> dict[str, DiscoveredBulb]:
    """Send one search and collect replies for ``timeout`` seconds.

    Returns:
        Map of bulb address to reported metadata

    """
    found: dict[str, DiscoveredBulb] = {}
    loop = asyncio.get_running_loop()

    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
    sock.bind(("", 0))
    sock.setblocking(False)

    transport, _protocol = await loop.create_datagram_endpoint(lambda: _DiscoveryProtocol(found), sock=sock)
    try:
        transport.sendto(build_search_request(), (DISCOVERY_GROUP, DISCOVERY_PORT))
        logger.info("Sent discovery search", extra={"group": DISCOVERY_GROUP, "port": DISCOVERY_PORT})
        await asyncio.sleep(timeout)
    finally:
        transport.close()

    logger.info("Discovery complete, found %d bulb(s)", len(found))
    return found
