"""Unit tests for bulb discovery."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from yeelight_lan.discovery import _DiscoveryProtocol, build_search_request, discover, parse_discovery_response
from yeelight_lan.structs import DiscoveredBulb

SAMPLE_RESPONSE = (
    "HTTP/1.1 200 OK\r\n"
    "Cache-Control: max-age=3600\r\n"
    "Location: yeelight://192.168.1.239:55443\r\n"
    "Server: POSIX UPnP/1.0 YGLC/1\r\n"
    "id: 0x000000000015243f\r\n"
    "model: color\r\n"
    "fw_ver: 18\r\n"
    "support: get_prop set_default set_power toggle set_bright\r\n"
    "power: on\r\n"
    "bright: 100\r\n"
    "color_mode: 2\r\n"
    "ct: 4000\r\n"
    "name: Desk\r\n"
)


class TestSearchRequest:
    def test_search_request(self):
        request = build_search_request().decode("ascii")

        assert request.startswith("M-SEARCH * HTTP/1.1\r\n")
        assert "HOST: 239.255.255.250:1982\r\n" in request
        assert 'MAN: "ssdp:discover"\r\n' in request
        assert "ST: wifi_bulb\r\n" in request
        assert request.endswith("\r\n\r\n")


class TestParseResponse:
    def test_parse_full_response(self):
        parsed = parse_discovery_response(SAMPLE_RESPONSE)

        assert parsed == (
            "192.168.1.239",
            DiscoveredBulb(
                address="192.168.1.239",
                port=55443,
                id="0x000000000015243f",
                model="color",
                name="Desk",
                power="on",
                ct="4000",
            ),
        )

    def test_headers_case_insensitive_and_lf_only(self):
        parsed = parse_discovery_response("LOCATION: yeelight://10.0.0.7:55443\nMODEL: mono\nName: \n")

        assert parsed is not None
        address, bulb = parsed
        assert address == "10.0.0.7"
        assert bulb.model == "mono"
        assert bulb.name == ""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "HTTP/1.1 200 OK\r\nLocation: http://192.168.1.2:80/desc.xml\r\n",
            "HTTP/1.1 200 OK\r\nmodel: color\r\n",
        ],
    )
    def test_non_bulb_replies_ignored(self, text: str):
        assert parse_discovery_response(text) is None


class TestDiscoveryProtocol:
    def test_collects_bulbs_and_ignores_others(self):
        found: dict[str, DiscoveredBulb] = {}
        protocol = _DiscoveryProtocol(found)

        protocol.datagram_received(SAMPLE_RESPONSE.encode(), ("192.168.1.239", 1982))
        protocol.datagram_received(b"HTTP/1.1 200 OK\r\nServer: router\r\n", ("192.168.1.1", 1900))
        protocol.datagram_received(SAMPLE_RESPONSE.encode(), ("192.168.1.239", 1982))

        assert list(found) == ["192.168.1.239"]

    def test_bulb_kept_with_info_logging_enabled(self, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.INFO, logger="yeelight_lan")
        found: dict[str, DiscoveredBulb] = {}

        _DiscoveryProtocol(found).datagram_received(SAMPLE_RESPONSE.encode(), ("192.168.1.239", 1982))

        assert found["192.168.1.239"].name == "Desk"
        record = next(r for r in caplog.records if r.getMessage() == "Discovered bulb at 192.168.1.239")
        assert record.bulb_name == "Desk"
        assert record.bulb_id == "0x000000000015243f"


class TestDiscover:
    @pytest.mark.asyncio
    async def test_discover_sends_search_and_collects_replies(self):
        transport = MagicMock()
        loop = asyncio.get_running_loop()

        async def fake_endpoint(factory: Callable[[], _DiscoveryProtocol], sock: object) -> tuple[MagicMock, _DiscoveryProtocol]:
            assert sock is mock_socket.return_value
            protocol = factory()
            protocol.datagram_received(SAMPLE_RESPONSE.encode(), ("192.168.1.239", 1982))
            return transport, protocol

        with (
            patch("yeelight_lan.discovery.socket.socket") as mock_socket,
            patch.object(loop, "create_datagram_endpoint", AsyncMock(side_effect=fake_endpoint)),
        ):
            found = await discover(timeout=0.01)

        mock_socket.return_value.bind.assert_called_once_with(("", 0))
        transport.sendto.assert_called_once_with(build_search_request(), ("239.255.255.250", 1982))
        transport.close.assert_called_once()
        assert list(found) == ["192.168.1.239"]
