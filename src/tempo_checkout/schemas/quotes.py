"""
Quote Schema Models

Transient models describing a pending payment. They are recomputed on every
attempt and never persisted or cached across attempts.
"""

from typing import Optional

from pydantic import Field

from .bases import CanonicalModel


class QuoteContext(CanonicalModel):
    """
    Resolved conversion intent for one payment attempt.

    Attributes:
        source_token: Token the payer spends
        target_token: Token the merchant receives
        target_amount: Invoice amount in target-token smallest units
        needs_conversion: Whether a swap is required
        quoted_amount_in: Point-in-time quote for ``target_amount`` (conversion only)
        max_amount_in: ``quoted_amount_in`` plus the slippage buffer (conversion only)
    """

    source_token: str
    target_token: str
    target_amount: int = Field(..., ge=0)
    needs_conversion: bool
    quoted_amount_in: Optional[int] = Field(None, ge=0)
    max_amount_in: Optional[int] = Field(None, ge=0)

    @property
    def required_source_amount(self) -> Optional[int]:
        """Amount of ``source_token`` the payer must hold."""
        if not self.needs_conversion:
            return self.target_amount
        return self.max_amount_in


class PaymentPreview(CanonicalModel):
    """
    Pending-payment view: quote plus the balance checks that gate the pay button.

    Attributes:
        quote: Resolved quote, None when unavailable
        balance: Payer's source-token balance, None when the read failed
        allowance: Exchange allowance on the source token (conversion only)
        can_pay: Whether payment may be attempted
        reason: Error kind explaining ``can_pay=False``
        message: Human-readable detail for ``reason``
    """

    quote: Optional[QuoteContext] = None
    balance: Optional[int] = None
    allowance: Optional[int] = None
    can_pay: bool = False
    reason: Optional[str] = None
    message: Optional[str] = None
