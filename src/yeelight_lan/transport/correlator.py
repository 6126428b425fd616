"""Request/reply correlation for one bulb session.

The bulb answers over the same socket it pushes notifications on, with no
ordering guarantee, so every request carries an id and is remembered here
until its reply arrives or it goes stale.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from yeelight_lan.const import STALE_COMMAND_SECONDS
from yeelight_lan.structs import PendingCommand

logger = logging.getLogger(__name__)


class CommandCorrelator:
    """Assigns request ids and tracks outstanding requests.

    **Thread Safety**: id assignment and registration happen in one critical
    section under ``_lock``, as do lookups and sweeps, so two concurrent sends
    can never observe the same id or clobber each other's pending entry.

    Attributes:
        stale_after: Seconds after which an unanswered request is evicted
    """

    def __init__(
        self,
        stale_after: float = STALE_COMMAND_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stale_after: float = stale_after
        self._clock: Callable[[], float] = clock
        self._lock: threading.Lock = threading.Lock()
        self._next_id: int = 1
        self._pending: dict[int, PendingCommand] = {}

    def register(
        self,
        method: str,
        params: list[Any],
        props: list[str] | None = None,
    ) -> PendingCommand:
        """Atomically allocate the next id and record the pending request."""
        with self._lock:
            msg_id = self._next_id
            self._next_id += 1
            pending = PendingCommand(
                msg_id=msg_id,
                method=method,
                params=list(params),
                sent_at=self._clock(),
                props=list(props) if props is not None else None,
            )
            self._pending[msg_id] = pending
        logger.debug(
            "Registered pending command",
            extra={"msg_id": msg_id, "method": method},
        )
        return pending

    def resolve(self, msg_id: int) -> PendingCommand | None:
        """Remove and return the pending request for ``msg_id`` (None if unknown)."""
        with self._lock:
            return self._pending.pop(msg_id, None)

    def discard(self, msg_id: int) -> None:
        """Forget a request that never made it onto the wire."""
        with self._lock:
            _ = self._pending.pop(msg_id, None)

    def sweep(self) -> list[PendingCommand]:
        """Evict every entry older than ``stale_after``; returns the evicted entries."""
        cutoff = self._clock() - self.stale_after
        with self._lock:
            stale = [p for p in self._pending.values() if p.sent_at < cutoff]
            for pending in stale:
                del self._pending[pending.msg_id]
        if stale:
            logger.debug(
                "Evicted %d stale pending command(s)",
                len(stale),
                extra={"msg_ids": [p.msg_id for p in stale]},
            )
        return stale

    def reset(self) -> None:
        """Clear the table and restart ids at 1 (new session)."""
        with self._lock:
            self._pending.clear()
            self._next_id = 1

    def now(self) -> float:
        """Current time on the correlator's clock."""
        return self._clock()

    @property
    def next_id(self) -> int:
        """Id the next registered request will get."""
        with self._lock:
            return self._next_id

    @property
    def pending(self) -> dict[int, PendingCommand]:
        """Snapshot of the pending table."""
        with self._lock:
            return dict(self._pending)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
