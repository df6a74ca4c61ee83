from .bases import CanonicalModel, InvoiceStatus, PaymentStatus, ExecutionMode, EngineState
from .invoices import Invoice, Payment, SettledInvoice, SettlementErrorInfo, SettlementResult
from .quotes import QuoteContext, PaymentPreview

__all__ = [
    "CanonicalModel",
    "InvoiceStatus",
    "PaymentStatus",
    "ExecutionMode",
    "EngineState",
    "Invoice",
    "Payment",
    "SettledInvoice",
    "SettlementErrorInfo",
    "SettlementResult",
    "QuoteContext",
    "PaymentPreview",
]
