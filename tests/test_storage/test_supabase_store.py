"""
Supabase (PostgREST) store tests using ``httpx.MockTransport``.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from tempo_checkout.clients.supabase_client import SupabaseClient, SupabaseInvoiceStore
from tempo_checkout.engine.exceptions import ConfigurationError, PersistenceError
from tempo_checkout.schemas.bases import InvoiceStatus
from tempo_checkout.schemas.invoices import Payment

from stubs import make_invoice, MOCK_PAYER_ADDRESS, ALPHA_USD


SUPABASE_URL = "https://project.supabase.co"


def make_store(handler) -> SupabaseInvoiceStore:
    return SupabaseInvoiceStore(SupabaseClient(SUPABASE_URL, "anon-key", transport=httpx.MockTransport(handler)))


def invoice_row(**overrides) -> dict:
    return make_invoice(**overrides).model_dump(mode="json")


class TestSupabaseInvoiceStore:

    @pytest.mark.asyncio
    async def test_get_invoice(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[invoice_row()])

        invoice = await make_store(handler).get_invoice("inv_1")

        assert invoice.id == "inv_1"
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/invoices"
        assert request.url.params["id"] == "eq.inv_1"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_get_missing_invoice(self):
        store = make_store(lambda request: httpx.Response(200, json=[]))
        assert await store.get_invoice("nope") is None

    @pytest.mark.asyncio
    async def test_conditional_update(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[invoice_row(status="paid", tx_hash="0x01")])

        paid_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
        updated = await make_store(handler).update_invoice_if_open(
            "inv_1", {"status": InvoiceStatus.PAID, "tx_hash": "0x01", "paid_at": paid_at}
        )

        assert updated.status == InvoiceStatus.PAID
        request = requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.inv_1"
        assert request.url.params["status"] == "eq.open"
        assert request.headers["prefer"] == "return=representation"
        body = json.loads(request.content)
        assert body["status"] == "paid"
        assert body["tx_hash"] == "0x01"
        assert body["paid_at"].startswith("2025-01-01T00:00:00")

    @pytest.mark.asyncio
    async def test_conditional_update_zero_rows(self):
        store = make_store(lambda request: httpx.Response(200, json=[]))
        assert await store.update_invoice_if_open("inv_1", {"status": InvoiceStatus.PAID}) is None

    @pytest.mark.asyncio
    async def test_insert_payment(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json=[{**body, "id": "pay_1", "created_at": "2025-01-01T00:00:00+00:00"}])

        payment = await make_store(handler).insert_payment(Payment(
            invoice_id="inv_1",
            payer_address=MOCK_PAYER_ADDRESS,
            amount="100.00",
            token_address=ALPHA_USD,
            tx_hash="0x01",
        ))

        assert payment.id == "pay_1"
        assert requests[0].url.path == "/rest/v1/payments"
        assert "id" not in json.loads(requests[0].content)

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        store = make_store(lambda request: httpx.Response(401, json={"message": "JWT expired"}))
        with pytest.raises(PersistenceError) as exc_info:
            await store.get_invoice("inv_1")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PersistenceError):
            await make_store(handler).list_payments("inv_1")

    @pytest.mark.asyncio
    async def test_list_payments_ordered(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[])

        assert await make_store(handler).list_payments("inv_1") == []
        assert requests[0].url.params["order"] == "created_at.asc"
        assert requests[0].url.params["invoice_id"] == "eq.inv_1"

    def test_from_env_requires_settings(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            SupabaseInvoiceStore.from_env()
