"""
Call plan builder tests.
"""

import pytest

from tempo_checkout.adapters.evm.schemas import ApproveCall, SwapCall, TransferCall
from tempo_checkout.engine.exceptions import PlanUnavailableError, QuoteUnavailableError
from tempo_checkout.engine.plans import build_call_plan
from tempo_checkout.schemas.quotes import QuoteContext

from stubs import (
    ALPHA_USD,
    BETA_USD,
    MOCK_MERCHANT_ADDRESS,
    MOCK_EXCHANGE_ADDRESS,
    MOCK_AMOUNT_100,
    MOCK_QUOTE_99,
    MOCK_MAX_IN_99,
)


DIRECT = QuoteContext(
    source_token=ALPHA_USD,
    target_token=ALPHA_USD,
    target_amount=MOCK_AMOUNT_100,
    needs_conversion=False,
)

CONVERSION = QuoteContext(
    source_token=BETA_USD,
    target_token=ALPHA_USD,
    target_amount=MOCK_AMOUNT_100,
    needs_conversion=True,
    quoted_amount_in=MOCK_QUOTE_99,
    max_amount_in=MOCK_MAX_IN_99,
)


def build(quote, allowance):
    return build_call_plan(quote, merchant=MOCK_MERCHANT_ADDRESS, exchange=MOCK_EXCHANGE_ADDRESS, allowance=allowance)


class TestBuildCallPlan:

    def test_direct_payment_is_single_transfer(self):
        plan = build(DIRECT, allowance=None)
        assert plan == [TransferCall(token=ALPHA_USD, to=MOCK_MERCHANT_ADDRESS, amount=MOCK_AMOUNT_100)]

    def test_conversion_with_insufficient_allowance(self):
        plan = build(CONVERSION, allowance=0)
        assert [call.kind for call in plan] == ["approve", "swap", "transfer"]
        assert plan[0] == ApproveCall(token=BETA_USD, spender=MOCK_EXCHANGE_ADDRESS, amount=MOCK_MAX_IN_99)
        assert plan[1] == SwapCall(
            token_in=BETA_USD,
            token_out=ALPHA_USD,
            amount_out=MOCK_AMOUNT_100,
            max_amount_in=MOCK_MAX_IN_99,
        )
        assert plan[2] == TransferCall(token=ALPHA_USD, to=MOCK_MERCHANT_ADDRESS, amount=MOCK_AMOUNT_100)

    def test_approval_omitted_when_allowance_covers_max(self):
        assert [call.kind for call in build(CONVERSION, allowance=MOCK_MAX_IN_99)] == ["swap", "transfer"]
        assert [call.kind for call in build(CONVERSION, allowance=10**30)] == ["swap", "transfer"]

    def test_allowance_one_short_requires_approval(self):
        assert build(CONVERSION, allowance=MOCK_MAX_IN_99 - 1)[0].kind == "approve"

    def test_missing_max_amount(self):
        quote = CONVERSION.model_copy(update={"max_amount_in": None})
        with pytest.raises(PlanUnavailableError, match="Cannot build plan"):
            build(quote, allowance=0)

    def test_missing_allowance(self):
        with pytest.raises(PlanUnavailableError):
            build(CONVERSION, allowance=None)

    def test_plan_unavailable_is_quote_unavailable(self):
        with pytest.raises(QuoteUnavailableError) as exc_info:
            build(CONVERSION, allowance=None)
        assert exc_info.value.kind == "quote_unavailable"

    def test_invalid_merchant_address(self):
        with pytest.raises(PlanUnavailableError):
            build_call_plan(DIRECT, merchant="merchant", exchange=MOCK_EXCHANGE_ADDRESS, allowance=None)

    def test_inputs_not_mutated(self):
        before = CONVERSION.model_dump()
        build(CONVERSION, allowance=0)
        assert CONVERSION.model_dump() == before
