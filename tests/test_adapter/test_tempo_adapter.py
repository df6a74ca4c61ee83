"""
Tempo Wallet Adapter Test Suite

Covers token reads, call encoding, EIP-5792 atomic batches, signed single
calls and the exchange quoter, all against mocked web3 objects.

Usage:
    pytest tests/test_adapter/test_tempo_adapter.py -v
"""

from unittest.mock import patch

import pytest
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from test_mocks import (
    MOCK_PRIVATE_KEY,
    MOCK_WALLET_ADDRESS,
    MOCK_CHAIN_ID,
    MOCK_TX_HASH,
    MOCK_BLOCK_NUMBER,
    MockContract,
    MockWeb3,
    rpc_result,
    rpc_error,
)
from stubs import (
    ALPHA_USD,
    BETA_USD,
    MOCK_EXCHANGE_ADDRESS,
    MOCK_MERCHANT_ADDRESS,
)

from tempo_checkout.adapters.evm.adapter import TempoWalletAdapter
from tempo_checkout.adapters.evm.exchange import StablecoinExchangeQuoter
from tempo_checkout.adapters.evm.schemas import ApproveCall, SwapCall, TransferCall
from tempo_checkout.engine.exceptions import (
    ConfigurationError,
    WalletRpcError,
    TransactionExecutionError,
)
from tempo_checkout.engine.executors import is_unsupported_batching


ENCODED = (AsyncWeb3.to_checksum_address(ALPHA_USD), "0xa9059cbb")
TRANSFER = TransferCall(token=ALPHA_USD, to=MOCK_MERCHANT_ADDRESS, amount=1_000_000)


def make_adapter(web3=None) -> TempoWalletAdapter:
    return TempoWalletAdapter(
        private_key=MOCK_PRIVATE_KEY,
        chain_id=MOCK_CHAIN_ID,
        exchange_address=MOCK_EXCHANGE_ADDRESS,
        web3=web3,
    )


class TestTempoWalletAdapterInitialization:

    def test_init_with_private_key(self):
        adapter = make_adapter()
        assert adapter.get_address() == MOCK_WALLET_ADDRESS
        assert adapter.chain_id == MOCK_CHAIN_ID

    def test_init_without_private_key_raises(self, monkeypatch):
        monkeypatch.delenv("TEMPO_PRIVATE_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            TempoWalletAdapter()

    def test_private_key_from_env(self, monkeypatch):
        monkeypatch.setenv("TEMPO_PRIVATE_KEY", MOCK_PRIVATE_KEY)
        assert TempoWalletAdapter().get_address() == MOCK_WALLET_ADDRESS


class TestTokenReads:

    @pytest.mark.asyncio
    async def test_get_balance(self):
        web3 = MockWeb3(contract=MockContract(balanceOf=42))
        assert await make_adapter(web3).get_balance(MOCK_WALLET_ADDRESS, ALPHA_USD) == 42

    @pytest.mark.asyncio
    async def test_get_allowance(self):
        web3 = MockWeb3(contract=MockContract(allowance=9))
        allowance = await make_adapter(web3).get_allowance(MOCK_WALLET_ADDRESS, MOCK_EXCHANGE_ADDRESS, BETA_USD)
        assert allowance == 9


class TestCallEncoding:
    """Encoding runs locally; no request reaches the provider."""

    def test_transfer_targets_token(self):
        adapter = make_adapter(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://localhost:1")))
        to, data = adapter._encode_call(TRANSFER)
        assert to == AsyncWeb3.to_checksum_address(ALPHA_USD)
        assert data.startswith("0xa9059cbb")

    def test_approve_targets_token(self):
        adapter = make_adapter(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://localhost:1")))
        to, data = adapter._encode_call(
            ApproveCall(token=BETA_USD, spender=MOCK_EXCHANGE_ADDRESS, amount=5)
        )
        assert to == AsyncWeb3.to_checksum_address(BETA_USD)
        assert data.startswith("0x095ea7b3")

    def test_swap_targets_exchange(self):
        adapter = make_adapter(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://localhost:1")))
        to, data = adapter._encode_call(
            SwapCall(token_in=BETA_USD, token_out=ALPHA_USD, amount_out=100, max_amount_in=101)
        )
        assert to == AsyncWeb3.to_checksum_address(MOCK_EXCHANGE_ADDRESS)
        assert data.startswith("0x") and len(data) == 2 + 8 + 4 * 64


class TestAtomicBatch:

    @pytest.mark.asyncio
    async def test_batch_confirmed(self):
        web3 = MockWeb3()
        web3.provider.make_request.side_effect = [
            rpc_result({"id": "0xbatch"}),
            rpc_result({"status": 100}),
            rpc_result({
                "status": 200,
                "receipts": [{"transactionHash": MOCK_TX_HASH, "status": "0x1", "blockNumber": "0x10"}],
            }),
        ]
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            result = await adapter.send_atomic_batch([TRANSFER], poll_interval=0)

        assert result.batch_id == "0xbatch"
        assert result.first_tx_hash() == MOCK_TX_HASH
        assert result.receipts[0].block_number == 16

        method, params = web3.provider.make_request.call_args_list[0].args
        assert method == "wallet_sendCalls"
        assert params[0]["atomicRequired"] is True
        assert params[0]["from"] == MOCK_WALLET_ADDRESS
        assert params[0]["calls"] == [{"to": ENCODED[0], "data": ENCODED[1], "value": "0x0"}]
        assert web3.provider.make_request.call_args_list[1].args == ("wallet_getCallsStatus", ["0xbatch"])

    @pytest.mark.asyncio
    async def test_method_not_found_is_unsupported_batching(self):
        web3 = MockWeb3()
        web3.provider.make_request.return_value = rpc_error(-32601, "the method wallet_sendCalls does not exist")
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            with pytest.raises(WalletRpcError) as exc_info:
                await adapter.send_atomic_batch([TRANSFER], poll_interval=0)

        assert exc_info.value.code == -32601
        assert is_unsupported_batching(exc_info.value)

    @pytest.mark.asyncio
    async def test_user_rejection_is_not_unsupported_batching(self):
        web3 = MockWeb3()
        web3.provider.make_request.return_value = rpc_error(4001, "User rejected the request")
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            with pytest.raises(WalletRpcError) as exc_info:
                await adapter.send_atomic_batch([TRANSFER], poll_interval=0)

        assert not is_unsupported_batching(exc_info.value)

    @pytest.mark.asyncio
    async def test_failed_batch_status(self):
        web3 = MockWeb3()
        web3.provider.make_request.side_effect = [
            rpc_result({"id": "0xbatch"}),
            rpc_result({"status": 500}),
        ]
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            with pytest.raises(TransactionExecutionError):
                await adapter.send_atomic_batch([TRANSFER], poll_interval=0)

    @pytest.mark.asyncio
    async def test_batch_times_out(self):
        web3 = MockWeb3()
        web3.provider.make_request.side_effect = [rpc_result("0xbatch")] + [rpc_result({"status": 100})] * 3
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            with pytest.raises(TimeoutError):
                await adapter.send_atomic_batch([TRANSFER], max_attempts=3, poll_interval=0)


class TestSingleCall:

    @pytest.mark.asyncio
    async def test_send_single_success(self):
        web3 = MockWeb3(receipt_side_effect=[
            TransactionNotFound("pending"),
            {"status": 1, "blockNumber": MOCK_BLOCK_NUMBER},
        ])
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            receipt = await adapter.send_single(TRANSFER, poll_interval=0)

        assert receipt.tx_hash == MOCK_TX_HASH
        assert receipt.status == 1
        assert receipt.block_number == MOCK_BLOCK_NUMBER
        web3.eth.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_single_revert(self):
        web3 = MockWeb3(receipt_side_effect=[{"status": 0, "blockNumber": MOCK_BLOCK_NUMBER}])
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            with pytest.raises(TransactionExecutionError) as exc_info:
                await adapter.send_single(TRANSFER, poll_interval=0)

        assert exc_info.value.tx_hash == MOCK_TX_HASH

    @pytest.mark.asyncio
    async def test_gas_estimation_failure_uses_fallback(self):
        web3 = MockWeb3()
        web3.eth.estimate_gas.side_effect = ValueError("execution reverted")
        adapter = make_adapter(web3)

        with patch.object(adapter, "_encode_call", return_value=ENCODED):
            receipt = await adapter.send_single(TRANSFER, poll_interval=0)

        assert receipt.tx_hash == MOCK_TX_HASH
        web3.eth.send_raw_transaction.assert_awaited_once()


class TestExchangeQuoter:

    @pytest.mark.asyncio
    async def test_quote_amount_in(self):
        contract = MockContract(quoteSwapExactAmountOut=99_000_000)
        quoter = StablecoinExchangeQuoter(web3=MockWeb3(contract=contract), exchange_address=MOCK_EXCHANGE_ADDRESS)

        assert await quoter.quote_amount_in(BETA_USD, ALPHA_USD, 100_000_000) == 99_000_000
        contract.functions.quoteSwapExactAmountOut.assert_called_once_with(
            AsyncWeb3.to_checksum_address(BETA_USD),
            AsyncWeb3.to_checksum_address(ALPHA_USD),
            100_000_000,
        )
