"""
Batch execution engine.

Executes a call plan against the wallet client, first as one atomic batch and,
when the wallet cannot batch atomically, call by call in plan order. Nothing
in this module retries: a blockchain call can have partial, non-idempotent
effects, so every retry is left to the user.

State machine::

    idle -> submitting_atomic -> settled
                              -> fallback_required -> submitting_sequential(i) -> settled | failed
                              -> failed
"""

from typing import Any, Callable, FrozenSet, List, Optional, Tuple

from ..adapters.bases import WalletClient
from ..adapters.evm.readers import BalanceReader
from ..adapters.evm.schemas import CallDescriptor, CallReceipt
from ..schemas.bases import EngineState, ExecutionMode
from ..utils import get_logger
from .events import (
    EventBus,
    BaseEvent,
    AtomicSubmitEvent,
    FallbackRequiredEvent,
    SequentialStepEvent,
    SettledEvent,
    ExecutionFailedEvent,
)
from .exceptions import AttemptCancelledError, ExecutionFailedError, HashMissingError

log = get_logger("engine.executors")


# ==================== Unsupported-batching signals ====================

#: JSON-RPC / EIP-1193 / EIP-5792 codes meaning "cannot batch atomically here".
#:   -32601 method not found, -32004 method not supported,
#:   4200 unsupported method, 5700 unsupported non-optional capability,
#:   5710 unsupported chain id, 5750 atomic-ready upgrade rejected,
#:   5760 atomicity not supported
UNSUPPORTED_BATCHING_CODES: FrozenSet[int] = frozenset({-32601, -32004, 4200, 5700, 5710, 5750, 5760})

#: SDK error class names carrying the same meaning.
UNSUPPORTED_BATCHING_NAMES: FrozenSet[str] = frozenset({
    "UnsupportedBatchingError",
    "MethodNotFoundRpcError",
    "MethodNotSupportedRpcError",
    "UnsupportedProviderMethodError",
    "AtomicityNotSupportedError",
    "AtomicReadyWalletRejectedUpgradeError",
    "UnsupportedNonOptionalCapabilityError",
    "UnsupportedChainIdError",
})

#: Lower-cased message fragments; matched only when no code or name matched.
UNSUPPORTED_BATCHING_MESSAGES: Tuple[str, ...] = (
    "method not found",
    "method not supported",
    "does not exist/is not available",
    "wallet_sendcalls is not supported",
    "atomicity not supported",
    "atomic batching not supported",
    "unsupported method",
)


def _error_chain(error: BaseException) -> List[BaseException]:
    chain: List[BaseException] = []
    current: Optional[BaseException] = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _error_code(error: BaseException) -> Optional[int]:
    code: Any = getattr(error, "code", None)
    if code is None and error.args and isinstance(error.args[0], dict):
        code = error.args[0].get("code")
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def is_unsupported_batching(error: BaseException) -> bool:
    """
    Decide whether ``error`` means the wallet cannot execute an atomic batch.

    Walks the exception and its causes, matching against the code table, then
    the class-name table, then the message table. Every other failure, such
    as "insufficient funds" or a user rejection (code 4001), returns False.
    """
    for exc in _error_chain(error):
        code = _error_code(exc)
        if code is not None and code in UNSUPPORTED_BATCHING_CODES:
            return True
        if type(exc).__name__ in UNSUPPORTED_BATCHING_NAMES:
            return True
    for exc in _error_chain(error):
        message = str(exc).lower()
        if any(fragment in message for fragment in UNSUPPORTED_BATCHING_MESSAGES):
            return True
    return False


# ==================== Executor ====================

class ExecutionOutcome:
    """Terminal result of a successful execution."""

    def __init__(self, tx_hash: str, mode: ExecutionMode, receipts_count: int):
        self.tx_hash = tx_hash
        self.mode = mode
        self.receipts_count = receipts_count

    def __repr__(self) -> str:
        return f"ExecutionOutcome(tx_hash={self.tx_hash}, mode={self.mode.value})"


class BatchExecutor:
    """
    Runs one call plan to a terminal state.

    One executor instance serves exactly one ``execute`` call; ``state`` and
    ``transitions`` expose where it stopped.

    Args:
        wallet: Wallet client used for submission
        reader: Optional per-attempt reader whose cache is invalidated after
            every submitted mutating call
        event_bus: Optional bus receiving one event per transition
        is_active: Optional liveness check consulted before every wallet
            submission; once it returns False nothing more is submitted
    """

    def __init__(
        self,
        wallet: WalletClient,
        reader: Optional[BalanceReader] = None,
        event_bus: Optional[EventBus] = None,
        is_active: Optional[Callable[[], bool]] = None,
    ):
        self._wallet = wallet
        self._reader = reader
        self._event_bus = event_bus
        self._is_active = is_active
        self.state = EngineState.IDLE
        self.transitions: List[EngineState] = [EngineState.IDLE]
        self.failed_step: Optional[int] = None

    async def _transition(self, state: EngineState, event: BaseEvent) -> None:
        self.state = state
        self.transitions.append(state)
        log.debug("engine -> %s: %r", state.value, event)
        if self._event_bus is not None:
            await self._event_bus.publish(event)

    async def _fail(self, error: Exception, step: Optional[int] = None) -> None:
        self.failed_step = step
        await self._transition(
            EngineState.FAILED,
            ExecutionFailedEvent(error_message=str(error), step=step),
        )

    async def _ensure_active(self, step: Optional[int] = None) -> None:
        if self._is_active is None or self._is_active():
            return
        error = AttemptCancelledError("Payment attempt was cancelled before submission")
        log.info("attempt cancelled; not submitting %s", "batch" if step is None else f"step {step}")
        await self._fail(error, step=step)
        raise error

    async def execute(self, calls: List[CallDescriptor]) -> ExecutionOutcome:
        """
        Execute ``calls`` atomically, falling back to sequential submission
        when batching is unsupported.

        Returns:
            ExecutionOutcome: Settlement hash and execution mode

        Raises:
            ExecutionFailedError: A call or the batch failed; ``step`` is set
                for sequential failures
            HashMissingError: Execution confirmed but no hash was surfaced
            AttemptCancelledError: The attempt went inactive before a submission
        """
        if self.state != EngineState.IDLE:
            raise RuntimeError(f"executor already used (state={self.state.value})")
        if not calls:
            raise ValueError("call plan is empty")

        await self._ensure_active()
        await self._transition(
            EngineState.SUBMITTING_ATOMIC,
            AtomicSubmitEvent(call_kinds=[c.kind for c in calls]),
        )
        try:
            result = await self._wallet.send_atomic_batch(list(calls))
        except Exception as e:
            self._invalidate_reader()
            if not is_unsupported_batching(e):
                log.warning("atomic batch failed: %s", e)
                error = ExecutionFailedError(str(e), cause=e)
                await self._fail(error)
                raise error from e
            log.info("atomic batching unsupported (%s); falling back to sequential", e)
            await self._transition(EngineState.FALLBACK_REQUIRED, FallbackRequiredEvent(reason=str(e)))
            return await self._execute_sequential(calls)

        self._invalidate_reader()
        tx_hash = result.first_tx_hash()
        if not tx_hash:
            error = HashMissingError("Atomic batch confirmed without a hash")
            await self._fail(error)
            raise error

        await self._transition(EngineState.SETTLED, SettledEvent(tx_hash=tx_hash, mode=ExecutionMode.ATOMIC))
        return ExecutionOutcome(tx_hash=tx_hash, mode=ExecutionMode.ATOMIC, receipts_count=len(result.receipts))

    async def _execute_sequential(self, calls: List[CallDescriptor]) -> ExecutionOutcome:
        receipt: Optional[CallReceipt] = None
        for index, call in enumerate(calls):
            await self._ensure_active(step=index)
            await self._transition(
                EngineState.SUBMITTING_SEQUENTIAL,
                SequentialStepEvent(index=index, call_kind=call.kind),
            )
            try:
                receipt = await self._wallet.send_single(call)
            except Exception as e:
                self._invalidate_reader()
                log.warning("sequential step %d (%s) failed: %s", index, call.kind, e)
                error = ExecutionFailedError(
                    f"Step {index} ({call.kind}) failed: {e}",
                    step=index,
                    call_kind=call.kind,
                    cause=e,
                )
                await self._fail(error, step=index)
                raise error from e
            self._invalidate_reader()

        # the final call is the transfer; its hash is the settlement hash
        settlement_hash = receipt.tx_hash if receipt is not None else None
        if not settlement_hash:
            error = HashMissingError(f"Final step ({calls[-1].kind}) confirmed without a hash")
            await self._fail(error)
            raise error

        await self._transition(
            EngineState.SETTLED,
            SettledEvent(tx_hash=settlement_hash, mode=ExecutionMode.SEQUENTIAL),
        )
        return ExecutionOutcome(tx_hash=settlement_hash, mode=ExecutionMode.SEQUENTIAL, receipts_count=len(calls))

    def _invalidate_reader(self) -> None:
        if self._reader is not None:
            self._reader.invalidate()
