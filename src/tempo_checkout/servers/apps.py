"""
Checkout Server - FastAPI wrapper around the settlement pipeline.

Exposes the token catalog, invoice lookup, a payment preview and settlement
over HTTP. The payer is the server-held wallet.
"""

import asyncio
import weakref
from typing import Callable, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..adapters.bases import WalletClient, QuoteService
from ..adapters.evm.constants import TokenCatalog
from ..engine.events import EventBus, Dependencies, BaseEvent
from ..engine.exceptions import (
    CheckoutError,
    ConfigurationError,
    InvoiceNotFoundError,
)
from ..engine.orchestrator import settle, preview_payment
from ..schemas.invoices import Invoice, SettlementErrorInfo
from ..storage.bases import InvoiceStore
from ..utils import get_logger
from .flows import setup_event_bus

log = get_logger("servers.apps")

#: HTTP status per error kind; anything not listed maps to 400.
ERROR_STATUS_CODES: Dict[str, int] = {
    "already_settled": 409,
    "invoice_not_open": 409,
    "invoice_not_found": 404,
    "execution_failed": 502,
    "hash_missing": 502,
    "persistence_error": 502,
    "blockchain_error": 502,
}


class SettleRequest(BaseModel):
    """Body of ``POST /invoices/{id}/settle``."""
    source_token: str


def error_response(kind: str, message: str, step: Optional[int] = None) -> JSONResponse:
    """Render ``{kind, message, step}`` with the status mapped from ``kind``."""
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(kind, 400),
        content=SettlementErrorInfo(kind=kind, message=message, step=step).model_dump(mode="json"),
    )


class CheckoutServer(FastAPI):
    """FastAPI server settling invoices from a server-held wallet."""

    def __init__(
        self,
        wallet: Optional[WalletClient] = None,
        quote_service: Optional[QuoteService] = None,
        store: Optional[InvoiceStore] = None,
        exchange_address: Optional[str] = None,
        catalog: Optional[TokenCatalog] = None,
        event_bus: Optional[EventBus] = None,
        **fastapi_kwargs
    ):
        """Initialize the checkout server.

        Args:
            wallet: Wallet client that pays (its address is the payer)
            quote_service: Exchange quote service (None disables conversions)
            store: Invoice/payment store
            exchange_address: Exchange override for swap calls and approvals
            catalog: Accepted tokens (default: the built-in catalog)
            event_bus: Engine event bus (default: bus with logging hooks)
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        self.catalog = catalog or TokenCatalog()
        self.event_bus: EventBus = event_bus or setup_event_bus()
        self.depends = Dependencies(
            wallet=wallet,
            quote_service=quote_service,
            store=store,
            exchange_address=exchange_address,
            catalog=self.catalog,
            event_bus=self.event_bus,
        )
        # entries vanish once no request holds the lock
        self._settle_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

        super().__init__(**fastapi_kwargs)

        self._setup_token_routes()
        self._setup_invoice_routes()
        self._setup_settlement_routes()

    def add_hook(self, event_class: type[BaseEvent], hook: Callable) -> None:
        """Register an engine event hook.

        Example:
            ```python
            async def on_fallback(event):
                print(f"Fallback: {event.reason}")

            app.add_hook(FallbackRequiredEvent, on_fallback)
            ```
        """
        self.event_bus.hook(event_class, hook)

    def hook(self, event_class: type[BaseEvent]) -> Callable:
        """Decorator for registering engine event hooks.

        Example:
            @app.hook(SettledEvent)
            async def on_settled(event):
                await notify_merchant(event.tx_hash)
        """
        def decorator(hook_func: Callable) -> Callable:
            self.event_bus.hook(event_class, hook_func)
            return hook_func
        return decorator

    async def _load_invoice(self, invoice_id: str) -> Invoice:
        if self.depends.store is None:
            raise ConfigurationError("Persistence service is not configured")
        invoice = await self.depends.store.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def _payer_address(self) -> str:
        if self.depends.wallet is None:
            raise ConfigurationError("Wallet client is not configured")
        return self.depends.wallet.get_address()

    # =========================================================================
    # Routes
    # =========================================================================

    def _setup_token_routes(self) -> None:
        @self.get("/tokens")
        async def list_tokens():
            """Accepted tokens, in catalog order."""
            return [token.model_dump(mode="json") for token in self.catalog.tokens()]

    def _setup_invoice_routes(self) -> None:
        @self.get("/invoices/{invoice_id}")
        async def get_invoice(invoice_id: str):
            try:
                invoice = await self._load_invoice(invoice_id)
            except CheckoutError as e:
                return error_response(e.kind, e.message)
            return invoice.model_dump(mode="json")

        @self.get("/invoices/{invoice_id}/quote")
        async def quote_invoice(invoice_id: str, source_token: str):
            """Pending-payment view: quote, balances and whether paying is possible."""
            try:
                invoice = await self._load_invoice(invoice_id)
                payer = self._payer_address()
            except CheckoutError as e:
                return error_response(e.kind, e.message)
            preview = await preview_payment(invoice, payer, source_token, deps=self.depends)
            return preview.model_dump(mode="json")

    def _setup_settlement_routes(self) -> None:
        @self.post("/invoices/{invoice_id}/settle")
        async def settle_invoice(invoice_id: str, request: SettleRequest):
            """Settle the invoice from the server wallet, one settlement per invoice at a time."""
            lock = self._settle_locks.setdefault(invoice_id, asyncio.Lock())
            async with lock:
                try:
                    invoice = await self._load_invoice(invoice_id)
                    payer = self._payer_address()
                except CheckoutError as e:
                    return error_response(e.kind, e.message)

                result = await settle(invoice, payer, request.source_token, deps=self.depends)

            if not result.ok:
                log.info("settlement of invoice %s failed: %s", invoice_id, result.error.kind)
                return error_response(result.error.kind, result.error.message, result.error.step)
            return result.settled.model_dump(mode="json")
