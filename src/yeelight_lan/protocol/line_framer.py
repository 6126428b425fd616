"""TCP stream line framing with buffer overflow protection.

This module provides LineFramer for extracting complete JSON lines from the
bulb's TCP byte stream, handling partial lines and multi-line reads.
"""

import logging

logger = logging.getLogger(__name__)


class LineFramer:
    r"""Extract complete lines from a TCP byte stream.

    TCP reads may return a partial line, several lines, or exact boundaries.
    LineFramer buffers incoming bytes and returns every complete line
    (terminated by ``\n``, an optional preceding ``\r`` is stripped).

    Security: a line longer than MAX_LINE_SIZE without a terminator discards
    the buffer, so a misbehaving peer cannot exhaust memory.

    Example:
        framer = LineFramer()
        assert framer.feed(b'{"id": 1, "res') == []
        assert framer.feed(b'ult": ["ok"]}\r\n') == ['{"id": 1, "result": ["ok"]}']

    """

    MAX_LINE_SIZE: int = 16 * 1024  # observed max ~300 bytes

    def __init__(self) -> None:
        """Initialize line framer with empty buffer."""
        self.buffer: bytearray = bytearray()

    def feed(self, data: bytes) -> list[str]:
        """Add data to buffer and return list of complete, non-empty lines."""
        self.buffer.extend(data)
        lines: list[str] = []

        while True:
            newline = self.buffer.find(b"\n")
            if newline < 0:
                break
            raw = bytes(self.buffer[:newline]).rstrip(b"\r")
            del self.buffer[: newline + 1]
            if raw.strip():
                lines.append(raw.decode("utf-8", errors="replace"))

        if len(self.buffer) > self.MAX_LINE_SIZE:
            logger.error(
                "Buffer cleared, line exceeds maximum size",
                extra={"buffer_size": len(self.buffer), "max_line_size": self.MAX_LINE_SIZE},
            )
            self.buffer = bytearray()

        return lines

    def reset(self) -> None:
        """Drop any buffered partial line (used when the socket is replaced)."""
        self.buffer = bytearray()
