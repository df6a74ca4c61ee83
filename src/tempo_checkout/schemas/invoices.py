"""
Invoice and Payment Schema Models

Models for the persisted records (``invoices`` and ``payments`` collections)
and for the value returned to the caller of ``settle``.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import Field, field_validator

from .bases import CanonicalModel, InvoiceStatus, PaymentStatus, ExecutionMode


class Invoice(CanonicalModel):
    """
    Merchant-issued request for a specific token amount.

    ``token_symbol`` and ``token_decimals`` are a snapshot taken when the
    invoice was created. Settlement scales ``amount`` with the snapshot, never
    with a live catalog lookup.

    Attributes:
        id: Unique invoice id
        merchant_id: Merchant profile id
        merchant_address: Address that receives the transfer
        status: Lifecycle state
        amount: USD-denominated decimal string (e.g. "100.00")
        token_address: Target token contract address
        token_symbol: Target token symbol snapshot
        token_decimals: Target token decimals snapshot
        title: Display title
        payer_address: Set on settlement
        tx_hash: Settlement transaction hash, set on settlement
        paid_at: Settlement timestamp
    """

    id: str = Field(..., description="Unique invoice id")
    merchant_id: str = Field(..., description="Merchant profile id")
    merchant_address: str = Field(..., description="Address receiving the payment")
    status: InvoiceStatus = Field(default=InvoiceStatus.OPEN, description="Lifecycle state")
    amount: str = Field(..., description="USD-denominated decimal string")
    token_address: str = Field(..., description="Target token contract address")
    token_symbol: str = Field(..., description="Target token symbol snapshot")
    token_decimals: int = Field(..., ge=0, description="Target token decimals snapshot")
    title: str = Field(..., description="Invoice title")
    description: Optional[str] = Field(None, description="Optional description")
    image_url: Optional[str] = Field(None, description="Optional image")
    display_label: Optional[str] = Field(None, description="Optional display label")
    payer_address: Optional[str] = Field(None, description="Payer address once paid")
    tx_hash: Optional[str] = Field(None, description="Settlement transaction hash")
    paid_at: Optional[datetime] = Field(None, description="Settlement timestamp")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: str) -> str:
        try:
            parsed = Decimal(value)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"amount must be a decimal string, got {value!r}") from e
        if not parsed.is_finite() or parsed <= 0:
            raise ValueError(f"amount must be a positive decimal, got {value!r}")
        return value

    def is_open(self) -> bool:
        return self.status == InvoiceStatus.OPEN


class Payment(CanonicalModel):
    """
    Append-only audit record, one per successful settlement attempt.

    Attributes:
        invoice_id: Invoice this payment settles
        status: Always ``confirmed`` when written by the recorder
        payer_address: Address that paid
        amount: Invoice amount (decimal string)
        token_address: Token the merchant received
        tx_hash: Settlement transaction hash
    """

    id: Optional[str] = Field(None, description="Store-assigned id")
    invoice_id: str = Field(..., description="Invoice foreign key")
    status: PaymentStatus = Field(default=PaymentStatus.CONFIRMED)
    payer_address: str = Field(..., description="Payer address")
    amount: str = Field(..., description="Paid amount (decimal string)")
    token_address: str = Field(..., description="Token contract address")
    tx_hash: str = Field(..., description="Settlement transaction hash")
    created_at: Optional[datetime] = Field(None, description="Insert timestamp")


class SettledInvoice(CanonicalModel):
    """Invoice view returned after a successful settlement."""

    invoice: Invoice
    payment: Payment
    tx_hash: str
    execution_mode: ExecutionMode
    stale: bool = Field(
        default=False,
        description="True when the attempt was cancelled while executing; callers discard it",
    )


class SettlementErrorInfo(CanonicalModel):
    """``{kind, message}`` surfaced verbatim to the caller."""

    kind: str
    message: str
    step: Optional[int] = None


class SettlementResult(CanonicalModel):
    """
    Result of ``settle``: either a settled invoice or an error.

    Example:
        result = await settle(invoice, payer, source_token, deps=deps)
        if result.ok:
            show(result.settled.invoice)
        elif result.error.kind == "already_settled":
            refetch(invoice.id)
    """

    ok: bool
    settled: Optional[SettledInvoice] = None
    error: Optional[SettlementErrorInfo] = None

    @classmethod
    def success(cls, settled: SettledInvoice) -> "SettlementResult":
        return cls(ok=True, settled=settled)

    @classmethod
    def failure(cls, kind: str, message: str, step: Optional[int] = None) -> "SettlementResult":
        return cls(ok=False, error=SettlementErrorInfo(kind=kind, message=message, step=step))
