"""
Settlement Recorder

Persists the outcome of a successful on-chain settlement: one append-only
payment row, then a single conditional flip of the invoice from ``open`` to
``paid``. The two writes are sequential and not transactional.
"""

from datetime import datetime, timezone
from typing import Optional

from ..schemas.bases import PaymentStatus, InvoiceStatus
from ..schemas.invoices import Invoice, Payment
from ..storage.bases import InvoiceStore
from ..utils import get_logger
from .exceptions import AlreadySettledError, PersistenceError

log = get_logger("engine.recorder")


class SettlementRecorder:
    """
    Records settlements against invoices exactly once.

    Example:
        recorder = SettlementRecorder(store)
        paid = await recorder.record(invoice, payer, tx_hash)
    """

    def __init__(self, store: InvoiceStore):
        self._store = store
        self.payment: Optional[Payment] = None

    async def record(
        self,
        invoice: Invoice,
        payer_address: str,
        tx_hash: str,
        amount: Optional[str] = None,
        token_address: Optional[str] = None,
    ) -> Invoice:
        """
        Insert the payment record, then mark the invoice paid if still open.

        Args:
            invoice: Invoice being settled
            payer_address: Address that paid
            tx_hash: Settlement transaction hash
            amount: Paid amount, defaults to the invoice amount
            token_address: Token received, defaults to the invoice token

        Returns:
            Invoice: The updated invoice. The stored payment record is kept
            on ``self.payment``.

        Raises:
            ValueError: If ``tx_hash`` is empty
            AlreadySettledError: If the conditional update matched zero rows
            PersistenceError: If either write failed. A failure of the invoice
                update after the payment insert leaves the audit row in place
                for read-repair.
        """
        if not tx_hash:
            raise ValueError("tx_hash is required to record a settlement")

        payment = Payment(
            invoice_id=invoice.id,
            status=PaymentStatus.CONFIRMED,
            payer_address=payer_address,
            amount=amount or invoice.amount,
            token_address=token_address or invoice.token_address,
            tx_hash=tx_hash,
        )
        try:
            stored = await self._store.insert_payment(payment)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to insert payment for invoice {invoice.id}: {e}") from e
        self.payment = stored

        changes = {
            "status": InvoiceStatus.PAID,
            "payer_address": payer_address,
            "tx_hash": tx_hash,
            "paid_at": datetime.now(timezone.utc),
        }
        try:
            updated = await self._store.update_invoice_if_open(invoice.id, changes)
        except Exception as e:
            log.error(
                "payment %s recorded but invoice %s update failed (tx %s): %s",
                stored.id, invoice.id, tx_hash, e,
            )
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(f"Payment recorded but invoice update failed: {e}") from e

        if updated is None:
            log.info("invoice %s was not open; tx %s recorded as audit only", invoice.id, tx_hash)
            raise AlreadySettledError(f"Invoice {invoice.id} is already settled")

        log.info("invoice %s paid by %s in %s", invoice.id, payer_address, tx_hash)
        return updated
