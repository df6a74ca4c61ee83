"""
BalanceReader tests: per-attempt caching, invalidation and failure mapping.
"""

import pytest

from tempo_checkout.adapters.evm.readers import BalanceReader
from tempo_checkout.engine.exceptions import QuoteUnavailableError

from stubs import StubWallet, MOCK_PAYER_ADDRESS, MOCK_EXCHANGE_ADDRESS, ALPHA_USD, BETA_USD


class TestBalanceReader:

    @pytest.mark.asyncio
    async def test_repeated_reads_hit_client_once(self):
        wallet = StubWallet(balances={ALPHA_USD: 5})
        reader = BalanceReader(wallet)

        assert await reader.get_balance(MOCK_PAYER_ADDRESS, ALPHA_USD) == 5
        assert await reader.get_balance(MOCK_PAYER_ADDRESS.upper().replace("0X", "0x"), ALPHA_USD) == 5
        assert wallet.balance_reads == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_fresh_read(self):
        wallet = StubWallet(balances={ALPHA_USD: 5}, allowances={ALPHA_USD: 7})
        reader = BalanceReader(wallet)
        await reader.read_both(MOCK_PAYER_ADDRESS, MOCK_EXCHANGE_ADDRESS, ALPHA_USD)

        wallet.balances[ALPHA_USD] = 1
        wallet.allowances[ALPHA_USD] = 0
        reader.invalidate()

        balance, allowance = await reader.read_both(MOCK_PAYER_ADDRESS, MOCK_EXCHANGE_ADDRESS, ALPHA_USD)
        assert (balance, allowance) == (1, 0)
        assert wallet.balance_reads == 2
        assert wallet.allowance_reads == 2

    @pytest.mark.asyncio
    async def test_tokens_are_cached_separately(self):
        wallet = StubWallet(balances={ALPHA_USD: 5, BETA_USD: 9})
        reader = BalanceReader(wallet)
        assert await reader.get_balance(MOCK_PAYER_ADDRESS, ALPHA_USD) == 5
        assert await reader.get_balance(MOCK_PAYER_ADDRESS, BETA_USD) == 9

    @pytest.mark.asyncio
    async def test_read_both_without_spender_skips_allowance(self):
        wallet = StubWallet(balances={ALPHA_USD: 5})
        balance, allowance = await BalanceReader(wallet).read_both(MOCK_PAYER_ADDRESS, None, ALPHA_USD)
        assert balance == 5
        assert allowance is None
        assert wallet.allowance_reads == 0

    @pytest.mark.asyncio
    async def test_read_failure_is_quote_unavailable(self):
        wallet = StubWallet(read_error=ConnectionError("rpc down"))
        reader = BalanceReader(wallet)
        with pytest.raises(QuoteUnavailableError, match="rpc down"):
            await reader.read_both(MOCK_PAYER_ADDRESS, MOCK_EXCHANGE_ADDRESS, ALPHA_USD)

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self):
        wallet = StubWallet(balances={ALPHA_USD: 5}, read_error=ConnectionError("rpc down"))
        reader = BalanceReader(wallet)
        with pytest.raises(QuoteUnavailableError):
            await reader.get_balance(MOCK_PAYER_ADDRESS, ALPHA_USD)

        wallet.read_error = None
        assert await reader.get_balance(MOCK_PAYER_ADDRESS, ALPHA_USD) == 5
