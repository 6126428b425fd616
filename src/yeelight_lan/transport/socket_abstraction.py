"""Line-oriented TCP connection to one Yeelight bulb.

The bulb speaks newline-terminated JSON in both directions on port 55443 and
may stay silent for many minutes between notifications, so reads carry no
deadline and the socket has TCP keepalive enabled instead. Writes and the
connect itself are bounded.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator

from yeelight_lan.const import CONNECT_TIMEOUT_SECONDS, WRITE_TIMEOUT_SECONDS, YEELIGHT_PORT
from yeelight_lan.protocol.line_framer import LineFramer

logger = logging.getLogger(__name__)


class BulbConnection:
    """One socket to a bulb: connect, write encoded lines, iterate inbound lines.

    A connection object is single-use. After EOF, a socket error or
    ``close()`` it stays closed; the connection manager builds a new one for
    every connect attempt.
    """

    READ_CHUNK: int = 4096

    def __init__(
        self,
        host: str,
        port: int = YEELIGHT_PORT,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        write_timeout: float = WRITE_TIMEOUT_SECONDS,
    ) -> None:
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.write_timeout = write_timeout
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.framer = LineFramer()
        self._open = False

    @property
    def peer(self) -> str:
        return f"{self.host}:{self.port}"

    async def connect(self) -> bool:
        """Open the socket; False on timeout or refusal (never raises)."""
        logger.debug("→ Opening bulb socket %s", self.peer, extra={"peer": self.peer})
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except TimeoutError:
            logger.warning(
                "Bulb %s did not accept a connection within %.1fs",
                self.peer,
                self.connect_timeout,
                extra={"peer": self.peer, "error": "timeout"},
            )
            return False
        except OSError as e:
            logger.warning(
                "Bulb %s unreachable: %s",
                self.peer,
                e,
                extra={"peer": self.peer, "error": type(e).__name__},
            )
            return False

        sock = self.writer.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        self.framer.reset()
        self._open = True
        logger.debug("✓ Bulb socket %s open", self.peer, extra={"peer": self.peer})
        return True

    async def send(self, line: bytes) -> bool:
        """Write one encoded command line; False if the socket is closed or stalls."""
        if not self._open or self.writer is None:
            logger.warning("Cannot write to %s: socket not open", self.peer, extra={"peer": self.peer})
            return False

        try:
            self.writer.write(line)
            await asyncio.wait_for(self.writer.drain(), timeout=self.write_timeout)
        except TimeoutError:
            logger.warning(
                "Write to %s stalled for %.1fs",
                self.peer,
                self.write_timeout,
                extra={"peer": self.peer, "error": "timeout"},
            )
            return False
        except OSError as e:
            logger.warning("Write to %s failed: %s", self.peer, e, extra={"peer": self.peer})
            self._open = False
            return False
        return True

    async def lines(self) -> AsyncIterator[str]:
        """Yield complete inbound lines until the bulb hangs up or the socket fails."""
        if not self._open or self.reader is None:
            return

        while True:
            try:
                chunk = await self.reader.read(self.READ_CHUNK)
            except OSError as e:
                logger.warning("Read from %s failed: %s", self.peer, e, extra={"peer": self.peer})
                break
            if not chunk:
                logger.info("Bulb %s closed the connection", self.peer, extra={"peer": self.peer})
                break
            for line in self.framer.feed(chunk):
                yield line

        self._open = False

    async def close(self) -> None:
        """Close the socket (idempotent)."""
        writer, self.writer = self.writer, None
        self.reader = None
        self._open = False
        self.framer.reset()
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Ignoring error while closing %s: %s", self.peer, e, extra={"peer": self.peer})

    @property
    def is_connected(self) -> bool:
        return self._open

    def __repr__(self) -> str:
        return f"BulbConnection({self.peer}, {'open' if self._open else 'closed'})"
