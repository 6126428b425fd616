"""Inventory of bulb sessions and bulk operations over them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from yeelight_lan.device import YeelightBulb
from yeelight_lan.protocol.exceptions import YeelightProtocolError
from yeelight_lan.structs import DiscoveredBulb, Endpoint
from yeelight_lan.transport.connection_manager import validate_address

logger = logging.getLogger(__name__)


class DuplicateDeviceError(YeelightProtocolError):
    """A session for this address already exists."""

    def __init__(self, device_id: str) -> None:
        self.device_id: str = device_id
        super().__init__(f"Device {device_id} already exists")


class UnknownDeviceError(YeelightProtocolError):
    """No session with this id."""

    def __init__(self, device_id: str) -> None:
        self.device_id: str = device_id
        super().__init__(f"Device {device_id} not found")


def device_id_for(address: str) -> str:
    return "yeelight-" + address.replace(".", "-")


class BulbManager:
    """Creates, removes and fans operations out to bulb sessions.

    Holds at most one session per address. Bulk operations run the
    per-session operation on every bulb concurrently; one failing bulb is
    logged and does not stop the others.
    """

    def __init__(
        self,
        bulb_factory: Callable[..., YeelightBulb] = YeelightBulb,
        transition_ms: int | None = None,
        poll_interval: int | None = None,
    ) -> None:
        self.bulb_factory = bulb_factory
        self.transition_ms = transition_ms
        self.poll_interval = poll_interval
        self.bulbs: dict[str, YeelightBulb] = {}

    def _endpoint(self, address: str, transition_ms: int | None, poll_interval: int | None) -> Endpoint:
        values: dict[str, object] = {"address": address}
        transition_ms = transition_ms if transition_ms is not None else self.transition_ms
        poll_interval = poll_interval if poll_interval is not None else self.poll_interval
        if transition_ms is not None:
            values["transition_ms"] = transition_ms
        if poll_interval is not None:
            values["poll_interval"] = poll_interval
        return Endpoint.model_validate(values)

    async def create(
        self,
        address: str,
        label: str | None = None,
        transition_ms: int | None = None,
        poll_interval: int | None = None,
    ) -> YeelightBulb:
        """Add a bulb and initialize its session.

        Raises:
            ConfigError: If the address is not a dotted quad
            DuplicateDeviceError: If the address is already managed

        """
        address = validate_address(address.strip())
        device_id = device_id_for(address)
        if device_id in self.bulbs:
            logger.warning("Device %s already exists", device_id)
            raise DuplicateDeviceError(device_id)

        label = (label or "").strip() or f"Yeelight {address}"
        bulb = self.bulb_factory(
            self._endpoint(address, transition_ms, poll_interval),
            label=label,
            device_id=device_id,
        )
        self.bulbs[device_id] = bulb
        await bulb.installed()
        logger.info("Created device '%s' (%s) with id %s", label, address, device_id)
        return bulb

    async def remove(self, device_id: str) -> None:
        """Shut a session down and forget it.

        Raises:
            UnknownDeviceError: If no such device is managed

        """
        bulb = self.bulbs.pop(device_id, None)
        if bulb is None:
            raise UnknownDeviceError(device_id)
        await bulb.shutdown()
        logger.info("Removed device %s", device_id)

    def get(self, device_id: str) -> YeelightBulb:
        try:
            return self.bulbs[device_id]
        except KeyError:
            raise UnknownDeviceError(device_id) from None

    def list(self) -> list[YeelightBulb]:
        return list(self.bulbs.values())

    def managed_addresses(self) -> set[str]:
        return {bulb.endpoint.address for bulb in self.bulbs.values() if bulb.endpoint.address}

    async def initialize_all(self) -> None:
        await self._fan_out("initialize")
        logger.info("Initialized all devices")

    async def poll_all(self) -> None:
        await self._fan_out("poll")
        logger.info("Polled all devices")

    async def configure_all(self) -> None:
        await self._fan_out("configure")
        logger.info("Configured all devices")

    async def add_discovered(
        self,
        discovered: dict[str, DiscoveredBulb],
        selected: Iterable[str] | None = None,
    ) -> list[YeelightBulb]:
        """Create sessions for discovered bulbs that are not managed yet.

        Args:
            discovered: Result of ``discover()``
            selected: Addresses to add (all when None)

        """
        wanted = set(selected) if selected is not None else set(discovered)
        managed = self.managed_addresses()
        added: list[YeelightBulb] = []
        for address, info in discovered.items():
            if address in managed or address not in wanted:
                continue
            label = info.name or f"Yeelight {address}"
            added.append(await self.create(address, label))
        return added

    async def shutdown(self) -> None:
        await self._fan_out("shutdown")
        self.bulbs.clear()

    async def _fan_out(self, operation: str) -> None:
        bulbs = self.list()
        results = await asyncio.gather(
            *(getattr(bulb, operation)() for bulb in bulbs),
            return_exceptions=True,
        )
        for bulb, result in zip(bulbs, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "%s failed for %s: %s",
                    operation,
                    bulb.label,
                    result,
                    extra={"device_id": bulb.device_id},
                )
