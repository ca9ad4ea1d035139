# src/pipeline/fanout.py - v1
"""Concurrent signal fan-out with an independent timeout per call.

Every branch runs at once and the fan-out joins them all before
returning. A branch whose adapter is absent or not ready, raises or
exceeds its timeout yields None and is reported in ``missing``; the
other branches are unaffected. With ``require_all`` set, any missing
branch fails the whole fan-out with AdapterFailure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from contentguard.core.errors import AdapterFailure
from contentguard.logging.context import set_signal_context
from contentguard.signals.base_signals import SignalAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalCall:
    """One fan-out branch: the adapter that must be ready and the call to make."""

    adapter: SignalAdapter | None
    call: Callable[[], Awaitable[Any]]


@dataclass
class FanoutResult:
    values: dict[str, Any] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    def get(self, name: str) -> Any:
        return self.values.get(name)


class SignalFanout:
    """Run named signal calls concurrently.

    Args:
        timeout_s: Per-call timeout; exceeding it fails only that signal.
        require_all: Fail the fan-out when any signal is missing.
    """

    def __init__(self, timeout_s: float = 10.0, require_all: bool = False) -> None:
        self._timeout_s = timeout_s
        self._require_all = require_all

    async def run(self, calls: dict[str, SignalCall]) -> FanoutResult:
        names = list(calls)
        outcomes = await asyncio.gather(
            *(self._run_one(name, calls[name]) for name in names)
        )

        result = FanoutResult()
        failures: dict[str, str] = {}
        for name, (value, reason) in zip(names, outcomes):
            if reason is None:
                result.values[name] = value
            else:
                result.missing.append(name)
                failures[name] = reason

        if failures and self._require_all:
            name = next(iter(failures))
            raise AdapterFailure(name, failures[name])
        return result

    async def _run_one(self, name: str, branch: SignalCall) -> tuple[Any, str | None]:
        """Returns (value, None) on success, (None, reason) otherwise."""
        # gather() wraps each branch in its own task with a copied context
        set_signal_context(name)

        if branch.adapter is None:
            logger.debug("Signal %s not configured", name)
            return None, "not configured"
        if not branch.adapter.is_ready:
            logger.warning("Signal %s not ready, skipping", name)
            return None, "not ready"

        try:
            value = await asyncio.wait_for(branch.call(), self._timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Signal %s timed out after %.1fs", name, self._timeout_s)
            return None, f"timed out after {self._timeout_s:.1f}s"
        except AdapterFailure as e:
            logger.warning("Signal %s failed: %s", name, e.reason)
            return None, e.reason
        except Exception as e:
            logger.warning("Signal %s failed: %s: %s", name, type(e).__name__, e)
            return None, f"{type(e).__name__}: {e}"
        return value, None
