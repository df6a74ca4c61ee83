"""
Call Plan Builder

Turns a resolved ``QuoteContext`` into the ordered list of on-chain calls.
Pure: no I/O and no mutation of its inputs.

Ordering is load-bearing:
    [Approve?] -> Swap -> Transfer
The approval must precede the swap that consumes it and the transfer must
follow the swap that produces the funds.
"""

from typing import List, Optional

from ..adapters.evm.schemas import (
    ApproveCall,
    SwapCall,
    TransferCall,
    CallDescriptor,
    validate_call_addresses,
)
from ..schemas.quotes import QuoteContext
from .exceptions import PlanUnavailableError


def build_call_plan(
    quote: QuoteContext,
    *,
    merchant: str,
    exchange: str,
    allowance: Optional[int],
) -> List[CallDescriptor]:
    """
    Build the call plan for one payment.

    Args:
        quote: Resolved quote context
        merchant: Address receiving the transfer
        exchange: Exchange contract that must be approved to pull the source token
        allowance: Current exchange allowance on the source token; only
            consulted for conversions

    Returns:
        List[CallDescriptor]: ``[Transfer]`` for same-token payments, otherwise
        ``[Approve?, Swap, Transfer]`` with the approval omitted when
        ``allowance >= max_amount_in``.

    Raises:
        PlanUnavailableError: If a conversion is needed but ``max_amount_in``
            or ``allowance`` is unresolved.
    """
    transfer = TransferCall(token=quote.target_token, to=merchant, amount=quote.target_amount)

    if not quote.needs_conversion:
        plan: List[CallDescriptor] = [transfer]
    else:
        if quote.max_amount_in is None:
            raise PlanUnavailableError("Cannot build plan: missing quote for conversion")
        if allowance is None:
            raise PlanUnavailableError("Cannot build plan: allowance unknown")

        plan = []
        if allowance < quote.max_amount_in:
            plan.append(ApproveCall(token=quote.source_token, spender=exchange, amount=quote.max_amount_in))
        plan.append(
            SwapCall(
                token_in=quote.source_token,
                token_out=quote.target_token,
                amount_out=quote.target_amount,
                max_amount_in=quote.max_amount_in,
            )
        )
        plan.append(transfer)

    for call in plan:
        try:
            validate_call_addresses(call)
        except ValueError as e:
            raise PlanUnavailableError(f"Cannot build plan: {e}") from e
    return plan
