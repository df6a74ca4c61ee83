"""
Stablecoin invoice checkout on the Tempo network.

Settles a merchant invoice from a payer wallet, converting between
stablecoins through the on-chain exchange when the payer pays with a token
other than the one the invoice asks for.
"""

from .engine.events import Dependencies, EventBus
from .engine.exceptions import CheckoutError
from .engine.orchestrator import settle, preview_payment, CheckoutSession, PaymentAttempt
from .schemas import Invoice, Payment, SettlementResult, PaymentPreview, QuoteContext
from .adapters.evm import TokenCatalog, ACCEPTED_TOKENS
from .utils import setup_logger

__all__ = [
    "Dependencies",
    "EventBus",
    "CheckoutError",
    "settle",
    "preview_payment",
    "CheckoutSession",
    "PaymentAttempt",
    "Invoice",
    "Payment",
    "SettlementResult",
    "PaymentPreview",
    "QuoteContext",
    "TokenCatalog",
    "ACCEPTED_TOKENS",
    "setup_logger",
]
