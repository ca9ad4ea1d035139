# src/cache/inflight.py - v2
"""In-flight guard: at most one concurrent analysis per fingerprint.

The first caller for a key gets an exclusive slot and runs the analysis;
every concurrent caller for the same key gets a waiting slot bound to the
winner's future. The exclusive slot is released on every exit path
(success, exception, cancellation), so a crashing analyzer cannot leave a
key pending forever. Slots live only in this process and are never
persisted.

Usage:
    async with registry.acquire(key) as slot:
        if not slot.exclusive:
            return await slot.wait(timeout_s)
        result = await compute()
        slot.resolve(result)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from contentguard.core.errors import DedupTimeout, ModerationFailed

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    future: asyncio.Future
    waiters: int = 0


class ComputeSlot:
    """Handle returned by InFlightRegistry.acquire()."""

    def __init__(self, key: str, pending: _Pending, exclusive: bool) -> None:
        self.key = key
        self.exclusive = exclusive
        self._pending = pending

    def resolve(self, result: Any) -> None:
        """Publish the winner's result to all waiters."""
        if not self.exclusive:
            raise RuntimeError("only the exclusive slot holder can resolve")
        if not self._pending.future.done():
            self._pending.future.set_result(result)

    async def wait(self, timeout_s: float) -> Any:
        """Wait for the winner's result.

        Raises:
            DedupTimeout: If the winner has not finished within timeout_s.
            ModerationFailed: If the winner failed or was cancelled.
        """
        if self.exclusive:
            raise RuntimeError("the exclusive slot holder has nothing to wait for")
        try:
            # shield: one waiter timing out must not cancel the shared future
            return await asyncio.wait_for(
                asyncio.shield(self._pending.future), timeout_s
            )
        except asyncio.TimeoutError as e:
            self._pending.waiters -= 1
            raise DedupTimeout(self.key, timeout_s) from e
        except asyncio.CancelledError:
            self._pending.waiters -= 1
            raise


class InFlightRegistry:
    """Key -> pending computation map with scoped acquisition.

    Check-and-insert happens without an intervening await, so it is
    atomic with respect to other tasks on the same event loop.
    """

    def __init__(self) -> None:
        self._slots: dict[str, _Pending] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[ComputeSlot]:
        pending = self._slots.get(key)
        if pending is not None:
            pending.waiters += 1
            logger.debug("Analysis already in flight for %s, waiting", key)
            yield ComputeSlot(key, pending, exclusive=False)
            return

        pending = _Pending(future=asyncio.get_running_loop().create_future())
        self._slots[key] = pending
        error: BaseException | None = None
        try:
            yield ComputeSlot(key, pending, exclusive=True)
        except BaseException as e:
            error = e
            raise
        finally:
            if self._slots.get(key) is pending:
                del self._slots[key]
            self._settle(key, pending, error)

    @staticmethod
    def _settle(key: str, pending: _Pending, error: BaseException | None) -> None:
        """Make sure no waiter is left hanging once the winner is gone."""
        future = pending.future
        if future.done():
            return
        if pending.waiters == 0:
            future.cancel()
            return
        if isinstance(error, asyncio.CancelledError):
            reason = "in-flight analysis was cancelled"
        elif error is not None:
            reason = "in-flight analysis failed"
        else:
            reason = "in-flight analysis finished without a result"
        failure = ModerationFailed(f"{reason} for {key}", retryable=True)
        failure.__cause__ = error
        future.set_exception(failure)
        logger.warning("%s; releasing %d waiter(s)", reason, pending.waiters)
