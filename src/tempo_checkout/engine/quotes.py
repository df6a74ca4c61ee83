"""
Quote Resolver

Decides whether a payment needs a currency conversion and, if so, obtains an
exact-output quote and applies the fixed slippage buffer. All arithmetic on
amounts is integer arithmetic on smallest units.
"""

from typing import Optional

from ..adapters.bases import QuoteService
from ..adapters.evm.constants import (
    SLIPPAGE_BPS,
    BPS_DENOMINATOR,
    amount_to_value,
    same_token,
)
from ..schemas.invoices import Invoice
from ..schemas.quotes import QuoteContext
from ..utils import get_logger
from .exceptions import QuoteUnavailableError

log = get_logger("engine.quotes")


def apply_slippage(quoted_amount_in: int, slippage_bps: int = SLIPPAGE_BPS) -> int:
    """
    Add the slippage buffer to a quoted input amount.

    ``max = quoted + ceil(quoted * slippage_bps / 10000)``, computed with
    integer ceiling division so no precision is lost.

    Example:
        apply_slippage(99_000_000)  # 99_990_000
        apply_slippage(1)           # 2
    """
    if quoted_amount_in < 0:
        raise ValueError("quoted_amount_in must be non-negative")
    if slippage_bps < 0:
        raise ValueError("slippage_bps must be non-negative")
    buffer = -(-quoted_amount_in * slippage_bps // BPS_DENOMINATOR)
    return quoted_amount_in + buffer


def invoice_target_amount(invoice: Invoice) -> int:
    """Invoice amount in target-token smallest units, scaled with the invoice's decimals snapshot."""
    return amount_to_value(amount=invoice.amount, decimals=invoice.token_decimals)


class QuoteResolver:
    """
    Resolves a ``QuoteContext`` for one payment attempt.

    Args:
        quote_service: Exchange quote service, or None when quoting is disabled
        slippage_bps: Buffer in basis points, 100 (1%) by default
    """

    def __init__(self, quote_service: Optional[QuoteService], slippage_bps: int = SLIPPAGE_BPS):
        self._quote_service = quote_service
        self._slippage_bps = slippage_bps

    async def resolve(self, *, source_token: str, target_token: str, target_amount: int) -> QuoteContext:
        """
        Build the quote context.

        Same-token payments return immediately without calling the quote
        service.

        Raises:
            QuoteUnavailableError: If the service is disabled, fails, or
                returns a non-positive amount.
        """
        if same_token(source_token, target_token):
            return QuoteContext(
                source_token=source_token,
                target_token=target_token,
                target_amount=target_amount,
                needs_conversion=False,
            )

        if self._quote_service is None:
            raise QuoteUnavailableError("Quote service is disabled")

        try:
            quoted = int(await self._quote_service.quote_amount_in(source_token, target_token, target_amount))
        except Exception as e:
            log.warning("quote failed %s -> %s for %d: %s", source_token, target_token, target_amount, e)
            raise QuoteUnavailableError(f"Quote unavailable: {e}") from e

        if quoted <= 0:
            raise QuoteUnavailableError(f"Quote service returned a non-positive amount: {quoted}")

        max_amount_in = apply_slippage(quoted, self._slippage_bps)
        log.debug("quoted %d in for %d out, max %d", quoted, target_amount, max_amount_in)
        return QuoteContext(
            source_token=source_token,
            target_token=target_token,
            target_amount=target_amount,
            needs_conversion=True,
            quoted_amount_in=quoted,
            max_amount_in=max_amount_in,
        )

    async def resolve_for_invoice(self, invoice: Invoice, source_token: str) -> QuoteContext:
        return await self.resolve(
            source_token=source_token,
            target_token=invoice.token_address,
            target_amount=invoice_target_amount(invoice),
        )
