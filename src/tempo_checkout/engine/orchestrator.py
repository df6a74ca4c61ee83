"""
Payment settlement orchestrator.

``settle`` is the single entry point offered to the UI layer. It wires the
quote resolver, the balance reader, the call plan builder, the batch executor
and the settlement recorder for one payment attempt, passing every
collaborator explicitly through ``Dependencies``.

Flow:
    invoice checks -> quote -> balance/allowance -> plan -> execute -> record

Each external call is a suspension point. After every one of them the
attempt is checked; a superseded attempt stops before anything is submitted
to the wallet. Once the wallet has executed the plan the settlement is always
recorded, and a superseded attempt gets its result flagged ``stale``.
"""

from typing import Dict, Optional

from ..adapters.evm.constants import TokenCatalog, get_exchange_address_from_env
from ..adapters.evm.readers import BalanceReader
from ..schemas.bases import InvoiceStatus
from ..schemas.invoices import Invoice, SettledInvoice, SettlementResult
from ..schemas.quotes import PaymentPreview, QuoteContext
from ..utils import get_logger
from .events import Dependencies
from .exceptions import (
    CheckoutError,
    ConfigurationError,
    AlreadySettledError,
    InvoiceNotOpenError,
    InsufficientBalanceError,
    AttemptCancelledError,
    ExecutionFailedError,
)
from .executors import BatchExecutor
from .plans import build_call_plan
from .quotes import QuoteResolver, invoice_target_amount
from .recorder import SettlementRecorder

log = get_logger("engine.orchestrator")


# ==================== Attempt tracking ====================

class PaymentAttempt:
    """Handle for one in-flight payment attempt."""

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False

    def ensure_active(self) -> None:
        if not self._active:
            raise AttemptCancelledError(f"Payment attempt for invoice {self.invoice_id} was cancelled")


class CheckoutSession:
    """
    Tracks at most one in-flight attempt per invoice for a client session.

    Beginning a new attempt for an invoice cancels the previous one; tearing
    the session down cancels everything still in flight.

    Example:
        session = CheckoutSession(deps)
        result = await session.settle(invoice, payer, source_token)
    """

    def __init__(self, deps: Dependencies):
        self.deps = deps
        self._attempts: Dict[str, PaymentAttempt] = {}

    def begin(self, invoice_id: str) -> PaymentAttempt:
        previous = self._attempts.get(invoice_id)
        if previous is not None:
            previous.cancel()
        attempt = PaymentAttempt(invoice_id)
        self._attempts[invoice_id] = attempt
        return attempt

    def cancel(self, invoice_id: str) -> None:
        attempt = self._attempts.pop(invoice_id, None)
        if attempt is not None:
            attempt.cancel()

    def close(self) -> None:
        for attempt in self._attempts.values():
            attempt.cancel()
        self._attempts.clear()

    def active_attempt(self, invoice_id: str) -> Optional[PaymentAttempt]:
        return self._attempts.get(invoice_id)

    async def settle(self, invoice: Invoice, payer_address: str, source_token: str) -> SettlementResult:
        attempt = self.begin(invoice.id)
        try:
            return await settle(invoice, payer_address, source_token, deps=self.deps, attempt=attempt)
        finally:
            if self._attempts.get(invoice.id) is attempt:
                del self._attempts[invoice.id]


# ==================== Shared steps ====================

def _check_invoice_payable(invoice: Invoice) -> None:
    if invoice.status == InvoiceStatus.PAID:
        raise AlreadySettledError(f"Invoice {invoice.id} is already settled")
    if invoice.status != InvoiceStatus.OPEN:
        raise InvoiceNotOpenError(f"Invoice {invoice.id} is {invoice.status.value}")


def _target_amount(invoice: Invoice) -> int:
    try:
        return invoice_target_amount(invoice)
    except ValueError as e:
        raise ConfigurationError(f"Invoice {invoice.id} amount cannot be scaled: {e}") from e


async def _resolve_quote_and_reads(
    invoice: Invoice,
    payer_address: str,
    source_token: str,
    deps: Dependencies,
    reader: BalanceReader,
    exchange: str,
    attempt: Optional[PaymentAttempt],
):
    catalog = deps.catalog or TokenCatalog()
    catalog.lookup(source_token)
    target_amount = _target_amount(invoice)

    resolver = QuoteResolver(deps.quote_service)
    quote = await resolver.resolve(
        source_token=source_token,
        target_token=invoice.token_address,
        target_amount=target_amount,
    )
    if attempt is not None:
        attempt.ensure_active()

    spender = exchange if quote.needs_conversion else None
    balance, allowance = await reader.read_both(payer_address, spender, source_token)
    if attempt is not None:
        attempt.ensure_active()
    return quote, balance, allowance


def _check_balance(quote: QuoteContext, balance: int) -> None:
    required = quote.required_source_amount
    if required is not None and balance < required:
        raise InsufficientBalanceError(
            f"Insufficient balance: {balance} available, {required} required",
            required=required,
            available=balance,
        )


# ==================== Public entry points ====================

async def settle(
    invoice: Invoice,
    payer_address: str,
    source_token: str,
    *,
    deps: Dependencies,
    attempt: Optional[PaymentAttempt] = None,
) -> SettlementResult:
    """
    Settle ``invoice`` from ``payer_address`` paying with ``source_token``.

    Args:
        invoice: Invoice to settle (its token snapshot drives amount scaling)
        payer_address: Connected wallet address
        source_token: Token the payer chose to spend
        deps: Wallet, quote service, store, exchange address, catalog, event bus
        attempt: Optional attempt handle used to discard superseded attempts

    Returns:
        SettlementResult: ``ok=True`` with the settled invoice, or ``ok=False``
        with ``error{kind, message, step}``. ``already_settled`` means the
        caller should re-fetch the invoice.
    """
    try:
        if deps.wallet is None:
            raise ConfigurationError("Wallet client is not configured")
        if deps.store is None:
            raise ConfigurationError("Persistence service is not configured")
        if deps.wallet.get_address().lower() != payer_address.lower():
            raise ConfigurationError("Payer address does not match the connected wallet")

        _check_invoice_payable(invoice)
        exchange = deps.exchange_address or get_exchange_address_from_env()
        reader = BalanceReader(deps.wallet)

        quote, balance, allowance = await _resolve_quote_and_reads(
            invoice, payer_address, source_token, deps, reader, exchange, attempt
        )
        _check_balance(quote, balance)
        plan = build_call_plan(quote, merchant=invoice.merchant_address, exchange=exchange, allowance=allowance)
        log.info(
            "settling invoice %s with %s (%s)",
            invoice.id, source_token, ", ".join(call.kind for call in plan),
        )

        executor = BatchExecutor(
            deps.wallet,
            reader=reader,
            event_bus=deps.event_bus,
            is_active=(lambda: attempt.is_active) if attempt is not None else None,
        )
        outcome = await executor.execute(plan)

        stale = attempt is not None and not attempt.is_active
        if stale:
            log.info("attempt for invoice %s was cancelled during execution; recording anyway", invoice.id)

        recorder = SettlementRecorder(deps.store)
        updated = await recorder.record(invoice, payer_address, outcome.tx_hash)
        return SettlementResult.success(
            SettledInvoice(
                invoice=updated,
                payment=recorder.payment,
                tx_hash=outcome.tx_hash,
                execution_mode=outcome.mode,
                stale=stale,
            )
        )
    except CheckoutError as e:
        step = e.step if isinstance(e, ExecutionFailedError) else None
        return SettlementResult.failure(e.kind, e.message, step=step)


async def preview_payment(
    invoice: Invoice,
    payer_address: str,
    source_token: str,
    *,
    deps: Dependencies,
) -> PaymentPreview:
    """
    Compute the pending-payment view: a fresh quote and the balance checks
    that decide whether the pay action is enabled.

    Never raises for expected conditions; ``can_pay=False`` with ``reason``
    set instead.
    """
    quote: Optional[QuoteContext] = None
    balance: Optional[int] = None
    allowance: Optional[int] = None
    try:
        if deps.wallet is None:
            raise ConfigurationError("Wallet client is not configured")
        _check_invoice_payable(invoice)
        exchange = deps.exchange_address or get_exchange_address_from_env()
        reader = BalanceReader(deps.wallet)
        quote, balance, allowance = await _resolve_quote_and_reads(
            invoice, payer_address, source_token, deps, reader, exchange, None
        )
        _check_balance(quote, balance)
        build_call_plan(quote, merchant=invoice.merchant_address, exchange=exchange, allowance=allowance)
    except CheckoutError as e:
        return PaymentPreview(
            quote=quote,
            balance=balance,
            allowance=allowance,
            can_pay=False,
            reason=e.kind,
            message=e.message,
        )
    return PaymentPreview(quote=quote, balance=balance, allowance=allowance, can_pay=True)
