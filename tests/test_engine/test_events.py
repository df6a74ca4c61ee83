"""
EventBus tests: hook registration, dispatch by event class and hook isolation.
"""

import asyncio

import pytest

from tempo_checkout.engine.events import (
    EventBus,
    Dependencies,
    AtomicSubmitEvent,
    SettledEvent,
    ExecutionFailedEvent,
)
from tempo_checkout.schemas.bases import EngineState, ExecutionMode
from tempo_checkout.servers.flows import setup_event_bus


class TestEventBus:

    @pytest.mark.asyncio
    async def test_hooks_receive_matching_events_only(self):
        bus = EventBus()
        settled, failed = [], []

        async def on_settled(event):
            settled.append(event)

        async def on_failed(event):
            failed.append(event)

        bus.hook(SettledEvent, on_settled)
        bus.hook(ExecutionFailedEvent, on_failed)

        await bus.publish(SettledEvent(tx_hash="0x01", mode=ExecutionMode.ATOMIC))

        assert len(settled) == 1
        assert settled[0].state == EngineState.SETTLED
        assert failed == []

    @pytest.mark.asyncio
    async def test_hooks_run_concurrently(self):
        bus = EventBus()
        started = []

        async def slow(event):
            started.append("slow")
            await asyncio.sleep(0.05)

        async def fast(event):
            started.append("fast")

        bus.hook(AtomicSubmitEvent, slow)
        bus.hook(AtomicSubmitEvent, fast)
        await bus.publish(AtomicSubmitEvent(call_kinds=["transfer"]))

        assert sorted(started) == ["fast", "slow"]

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_propagate(self):
        bus = EventBus()
        seen = []

        async def broken(event):
            raise RuntimeError("hook bug")

        async def healthy(event):
            seen.append(event)

        bus.hook(SettledEvent, broken)
        bus.hook(SettledEvent, healthy)

        await bus.publish(SettledEvent(tx_hash="0x01", mode=ExecutionMode.SEQUENTIAL))
        assert len(seen) == 1

    def test_sync_hook_rejected(self):
        def not_async(event):
            pass

        with pytest.raises(TypeError):
            EventBus().hook(SettledEvent, not_async)

    @pytest.mark.asyncio
    async def test_publish_without_hooks(self):
        await EventBus().publish(ExecutionFailedEvent(error_message="x", step=0))

    def test_dependencies_are_read_only(self):
        deps = Dependencies()
        with pytest.raises(AttributeError):
            deps.wallet = object()

    @pytest.mark.asyncio
    async def test_logging_hooks_installed(self, caplog):
        bus = setup_event_bus()
        with caplog.at_level("ERROR", logger="tempo_checkout"):
            await bus.publish(ExecutionFailedEvent(error_message="swap reverted", step=1))
        assert "execution failed at step 1: swap reverted" in caplog.text
