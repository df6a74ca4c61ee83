"""In-memory ``InvoiceStore`` used by tests and the local demo server."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..schemas.bases import InvoiceStatus
from ..schemas.invoices import Invoice, Payment
from .bases import InvoiceStore


class InMemoryInvoiceStore(InvoiceStore):
    """
    Process-local store with the same conditional-update semantics as the
    hosted database.

    A single ``asyncio.Lock`` serialises the check-and-set so two concurrent
    settlements of one invoice cannot both flip it to paid.
    """

    def __init__(self, invoices: Optional[List[Invoice]] = None):
        self._invoices: Dict[str, Invoice] = {}
        self._payments: List[Payment] = []
        self._lock = asyncio.Lock()
        for invoice in invoices or []:
            self._invoices[invoice.id] = invoice

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self._invoices.get(invoice_id)

    async def insert_invoice(self, invoice: Invoice) -> Invoice:
        async with self._lock:
            if invoice.id in self._invoices:
                raise ValueError(f"Invoice {invoice.id} already exists")
            stored = invoice.model_copy(
                update={"created_at": invoice.created_at or datetime.now(timezone.utc)}
            )
            self._invoices[invoice.id] = stored
            return stored

    async def insert_payment(self, payment: Payment) -> Payment:
        stored = payment.model_copy(
            update={
                "id": payment.id or str(uuid.uuid4()),
                "created_at": payment.created_at or datetime.now(timezone.utc),
            }
        )
        self._payments.append(stored)
        return stored

    async def update_invoice_if_open(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        async with self._lock:
            current = self._invoices.get(invoice_id)
            if current is None or current.status != InvoiceStatus.OPEN:
                return None
            updated = Invoice.model_validate({**current.model_dump(), **changes})
            self._invoices[invoice_id] = updated
            return updated

    async def list_payments(self, invoice_id: str) -> List[Payment]:
        return [p for p in self._payments if p.invoice_id == invoice_id]
