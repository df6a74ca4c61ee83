"""
Supabase (PostgREST) Invoice Store

``InvoiceStore`` implementation talking to the hosted database's REST
interface through ``httpx``. Rows are exchanged as JSON and validated into the
pydantic record models on the way in.

PostgREST conventions used here:
    - Filters are query parameters: ``?id=eq.<id>&status=eq.open``
    - ``Prefer: return=representation`` makes writes return the affected rows
    - A conditional ``PATCH`` that matches nothing returns an empty list
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter

from ..adapters.evm.constants import get_supabase_settings_from_env
from ..engine.exceptions import PersistenceError
from ..schemas.bases import InvoiceStatus
from ..schemas.invoices import Invoice, Payment
from ..storage.bases import InvoiceStore
from ..utils import get_logger

log = get_logger("clients.supabase")

_CHANGES_ADAPTER = TypeAdapter(Dict[str, Any])


class SupabaseClient(httpx.AsyncClient):
    """
    ``httpx.AsyncClient`` preconfigured for a Supabase project.

    Sets the base URL to ``<project>/rest/v1`` and attaches the ``apikey`` and
    bearer headers to every request. Fully usable as an async context manager.

    Usage:
        ```python
        async with SupabaseClient(url, anon_key) as client:
            response = await client.get("/invoices", params={"id": "eq.inv_1"})
        ```
    """

    def __init__(self, url: str, key: str, **kwargs):
        """
        Args:
            url: Project URL (e.g. "https://xyz.supabase.co")
            key: Anon or service key
            **kwargs: All standard httpx.AsyncClient arguments
        """
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            **(kwargs.pop("headers", None) or {}),
        }
        kwargs.setdefault("timeout", 15.0)
        super().__init__(base_url=f"{url.rstrip('/')}/rest/v1", headers=headers, **kwargs)


class SupabaseInvoiceStore(InvoiceStore):
    """
    Invoice store backed by the ``invoices`` and ``payments`` tables.

    Every non-2xx response raises ``PersistenceError`` carrying the status code.

    Example:
        store = SupabaseInvoiceStore.from_env()
        invoice = await store.get_invoice("inv_123")
    """

    def __init__(self, client: SupabaseClient):
        self._client = client

    @classmethod
    def from_env(cls, **client_kwargs) -> "SupabaseInvoiceStore":
        """
        Build a store from SUPABASE_URL / SUPABASE_ANON_KEY.

        Raises:
            ConfigurationError: If either variable is missing.
        """
        settings = get_supabase_settings_from_env()
        return cls(SupabaseClient(settings["url"], settings["key"], **client_kwargs))

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # Request helpers
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        representation: bool = False,
    ) -> Any:
        headers = {"Prefer": "return=representation"} if representation else None
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise PersistenceError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 300:
            raise PersistenceError(
                f"{method} {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _first(rows: Any) -> Optional[Dict[str, Any]]:
        if isinstance(rows, list):
            return rows[0] if rows else None
        return rows

    # =========================================================================
    # InvoiceStore
    # =========================================================================

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        rows = await self._request("GET", "/invoices", params={"id": f"eq.{invoice_id}", "select": "*"})
        row = self._first(rows)
        return Invoice.model_validate(row) if row else None

    async def insert_invoice(self, invoice: Invoice) -> Invoice:
        body = invoice.model_dump(mode="json", exclude_none=True)
        rows = await self._request("POST", "/invoices", json=body, representation=True)
        row = self._first(rows)
        return Invoice.model_validate(row) if row else invoice

    async def insert_payment(self, payment: Payment) -> Payment:
        body = payment.model_dump(mode="json", exclude_none=True)
        rows = await self._request("POST", "/payments", json=body, representation=True)
        row = self._first(rows)
        return Payment.model_validate(row) if row else payment

    async def update_invoice_if_open(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        body = _CHANGES_ADAPTER.dump_python(changes, mode="json")
        rows = await self._request(
            "PATCH",
            "/invoices",
            params={"id": f"eq.{invoice_id}", "status": f"eq.{InvoiceStatus.OPEN.value}"},
            json=body,
            representation=True,
        )
        row = self._first(rows)
        if row is None:
            log.info("conditional update of invoice %s matched zero rows", invoice_id)
            return None
        return Invoice.model_validate(row)

    async def list_payments(self, invoice_id: str) -> List[Payment]:
        rows = await self._request(
            "GET",
            "/payments",
            params={"invoice_id": f"eq.{invoice_id}", "select": "*", "order": "created_at.asc"},
        )
        return [Payment.model_validate(row) for row in rows or []]
