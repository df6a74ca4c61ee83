from .bases import InvoiceStore
from .memory import InMemoryInvoiceStore

__all__ = [
    "InvoiceStore",
    "InMemoryInvoiceStore",
]
