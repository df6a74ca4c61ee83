"""
Abstract persistence interface.

Record-oriented access to the ``invoices`` and ``payments`` collections. The
only write the settlement path performs on an invoice is a conditional update
guarded by ``status = 'open'``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..schemas.invoices import Invoice, Payment


class InvoiceStore(ABC):
    """
    Abstract invoice/payment store.

    Implementations:
        - InMemoryInvoiceStore: process-local store for tests and demos
        - SupabaseInvoiceStore: PostgREST over httpx
    """

    @abstractmethod
    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Fetch an invoice by id, None when it does not exist."""

    @abstractmethod
    async def insert_invoice(self, invoice: Invoice) -> Invoice:
        """Insert a new invoice and return the stored record."""

    @abstractmethod
    async def insert_payment(self, payment: Payment) -> Payment:
        """Append a payment audit record and return the stored record."""

    @abstractmethod
    async def update_invoice_if_open(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        """
        Apply ``changes`` to the invoice only if its status is still ``open``.

        Returns:
            Optional[Invoice]: The updated invoice, or None when zero rows matched.
        """

    @abstractmethod
    async def list_payments(self, invoice_id: str) -> List[Payment]:
        """All payment records for an invoice, oldest first."""
