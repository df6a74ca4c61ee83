"""
Built-in engine hooks.

Logs every batch execution transition so a running service leaves a trail of
fallback decisions and failed steps.
"""

from ..engine.events import (
    EventBus,
    AtomicSubmitEvent,
    FallbackRequiredEvent,
    SequentialStepEvent,
    SettledEvent,
    ExecutionFailedEvent,
)
from ..utils import get_logger

log = get_logger("servers.flows")


# ==================== Event Hooks ====================

async def log_atomic_submit(event: AtomicSubmitEvent) -> None:
    log.info("submitting atomic batch: %s", ", ".join(event.call_kinds))


async def log_fallback_required(event: FallbackRequiredEvent) -> None:
    log.warning("atomic batching unavailable, falling back to sequential: %s", event.reason)


async def log_sequential_step(event: SequentialStepEvent) -> None:
    log.info("sequential step %d: %s", event.index, event.call_kind)


async def log_settled(event: SettledEvent) -> None:
    log.info("settled in %s mode: %s", event.mode.value, event.tx_hash)


async def log_execution_failed(event: ExecutionFailedEvent) -> None:
    if event.step is not None:
        log.error("execution failed at step %d: %s", event.step, event.error_message)
    else:
        log.error("execution failed: %s", event.error_message)


# ==================== Event Bus Setup ====================

def setup_event_bus(enable_logging_hooks: bool = True) -> EventBus:
    """Initialize an event bus, optionally with the built-in logging hooks.

    Args:
        enable_logging_hooks: If True, every transition is logged.
    """
    event_bus = EventBus()

    if enable_logging_hooks:
        event_bus.hook(AtomicSubmitEvent, log_atomic_submit)
        event_bus.hook(FallbackRequiredEvent, log_fallback_required)
        event_bus.hook(SequentialStepEvent, log_sequential_step)
        event_bus.hook(SettledEvent, log_settled)
        event_bus.hook(ExecutionFailedEvent, log_execution_failed)

    return event_bus
