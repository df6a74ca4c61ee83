"""
Typed engine events and the hook bus that carries them.

The batch execution engine publishes one event per state transition. Hooks
observe transitions (logging, metrics, UI progress) and never feed results
back into the engine. Infrastructure collaborators travel separately in the
read-only ``Dependencies`` container.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Callable, Optional, List, Awaitable

from pydantic import BaseModel, ConfigDict

from ..adapters.bases import WalletClient, QuoteService
from ..adapters.evm.constants import TokenCatalog
from ..schemas.bases import EngineState, ExecutionMode
from ..storage.bases import InvoiceStore
from ..utils import get_logger

log = get_logger("engine.events")

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Transition Events ====================

class AtomicSubmitEvent(BaseModel, BaseEvent):
    """Transition: idle -> submitting_atomic."""
    call_kinds: List[str]
    state: EngineState = EngineState.SUBMITTING_ATOMIC

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"AtomicSubmitEvent(calls={self.call_kinds})"


class FallbackRequiredEvent(BaseModel, BaseEvent):
    """Transition: submitting_atomic -> fallback_required."""
    reason: str
    state: EngineState = EngineState.FALLBACK_REQUIRED

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"FallbackRequiredEvent(reason={self.reason})"


class SequentialStepEvent(BaseModel, BaseEvent):
    """Transition: submitting_sequential at ``index``."""
    index: int
    call_kind: str
    state: EngineState = EngineState.SUBMITTING_SEQUENTIAL

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"SequentialStepEvent(index={self.index}, call={self.call_kind})"


class SettledEvent(BaseModel, BaseEvent):
    """Terminal: settled with the settlement hash."""
    tx_hash: str
    mode: ExecutionMode
    state: EngineState = EngineState.SETTLED

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"SettledEvent(tx_hash={self.tx_hash}, mode={self.mode.value})"


class ExecutionFailedEvent(BaseModel, BaseEvent):
    """Terminal: failed, optionally at a sequential step."""
    error_message: str
    step: Optional[int] = None
    state: EngineState = EngineState.FAILED

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ExecutionFailedEvent(step={self.step}, error={self.error_message})"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for infrastructure dependencies (read-only)."""
    wallet: Optional[WalletClient] = None
    quote_service: Optional[QuoteService] = None
    store: Optional[InvoiceStore] = None
    exchange_address: Optional[str] = None
    catalog: Optional[TokenCatalog] = None
    event_bus: Optional["EventBus"] = None


# ==================== Event Bus ====================

EventHookFunc = Callable[[BaseEvent], Awaitable[None]]


class EventBus:
    """Dispatcher for engine transition events."""

    def __init__(self) -> None:
        """Initialize with empty hooks."""
        self._hooks: Dict[type, list[EventHookFunc]] = {}

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """
        Register a hook for the given event class.

        Args:
            event_class: The event class to hook into.
            hook_func: Coroutine function called with the event.

        Raises:
            TypeError: If hook_func is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Hook must be a coroutine function, got {type(hook_func).__name__}")

        if event_class not in self._hooks:
            self._hooks[event_class] = []
        self._hooks[event_class].append(hook_func)

    async def publish(self, event: BaseEvent) -> None:
        """
        Run every hook registered for the event's class concurrently.

        Hook failures are logged and never interrupt the publisher.
        """
        hooks = self._hooks.get(type(event), [])
        if not hooks:
            return
        results = await asyncio.gather(*(hook(event) for hook in hooks), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                log.error("hook failed for %r: %s", event, result)
