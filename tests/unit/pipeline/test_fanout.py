# tests/unit/pipeline/test_fanout.py - v1
"""Tests for pipeline/fanout.py - per-signal isolation, timeouts, require_all."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from contentguard.core.errors import AdapterFailure
from contentguard.logging.context import get_context, set_signal_context
from contentguard.pipeline.fanout import SignalCall, SignalFanout


def _adapter(ready: bool = True) -> MagicMock:
    adapter = MagicMock()
    adapter.is_ready = ready
    return adapter


def _returning(value, delay: float = 0.0):
    async def call():
        if delay:
            await asyncio.sleep(delay)
        return value

    return call


def _raising(error: Exception):
    async def call():
        raise error

    return call


class TestSignalFanout:
    @pytest.mark.asyncio
    async def test_all_succeed(self):
        fan = await SignalFanout(timeout_s=1.0).run({
            "a": SignalCall(_adapter(), _returning(1)),
            "b": SignalCall(_adapter(), _returning(2)),
        })
        assert fan.values == {"a": 1, "b": 2}
        assert fan.missing == []

    @pytest.mark.asyncio
    async def test_failures_isolated(self):
        fan = await SignalFanout(timeout_s=1.0).run({
            "ok": SignalCall(_adapter(), _returning("v")),
            "adapter": SignalCall(_adapter(), _raising(AdapterFailure("adapter", "HTTP 500"))),
            "bug": SignalCall(_adapter(), _raising(KeyError("score"))),
        })
        assert fan.get("ok") == "v"
        assert fan.get("adapter") is None
        assert sorted(fan.missing) == ["adapter", "bug"]

    @pytest.mark.asyncio
    async def test_timeout_is_per_call(self):
        loop = asyncio.get_running_loop()
        started = loop.time()
        fan = await SignalFanout(timeout_s=0.05).run({
            "slow": SignalCall(_adapter(), _returning("late", delay=5.0)),
            "fast": SignalCall(_adapter(), _returning("on time")),
        })
        assert fan.missing == ["slow"]
        assert fan.get("fast") == "on time"
        assert loop.time() - started < 2.0

    @pytest.mark.asyncio
    async def test_branches_run_concurrently(self):
        loop = asyncio.get_running_loop()
        started = loop.time()
        await SignalFanout(timeout_s=1.0).run({
            name: SignalCall(_adapter(), _returning(name, delay=0.2))
            for name in ("a", "b", "c")
        })
        assert loop.time() - started < 0.5

    @pytest.mark.asyncio
    async def test_absent_and_not_ready_never_called(self):
        called = []

        async def call():
            called.append(True)

        fan = await SignalFanout().run({
            "absent": SignalCall(None, call),
            "cold": SignalCall(_adapter(ready=False), call),
        })
        assert sorted(fan.missing) == ["absent", "cold"]
        assert called == []

    @pytest.mark.asyncio
    async def test_require_all(self):
        fanout = SignalFanout(timeout_s=1.0, require_all=True)
        with pytest.raises(AdapterFailure) as exc_info:
            await fanout.run({
                "ok": SignalCall(_adapter(), _returning(1)),
                "down": SignalCall(_adapter(), _raising(AdapterFailure("down", "refused"))),
            })
        assert exc_info.value.signal == "down"
        assert exc_info.value.reason == "refused"

    @pytest.mark.asyncio
    async def test_signal_context_does_not_leak(self):
        set_signal_context(None)
        await SignalFanout().run({"a": SignalCall(_adapter(), _returning(1))})
        assert get_context().signal is None
