"""
Tempo Wallet Adapter

Server-side ``WalletClient`` backed by a locally held private key and a
JSON-RPC node. Handles token reads, EIP-5792 atomic batches and plain signed
transactions for the sequential fallback.

Key Features:
    - ERC20/TIP-20 ``balanceOf`` and ``allowance`` reads
    - Atomic batch submission via ``wallet_sendCalls`` (``atomicRequired``)
      with ``wallet_getCallsStatus`` polling
    - Single-call submission: encode, sign, broadcast, poll for the receipt

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For local transaction signing
"""

from typing import Optional, Dict, Any, List, Tuple
import asyncio

from web3 import AsyncWeb3, Web3
from eth_account import Account
from web3.exceptions import TransactionNotFound

from ..bases import WalletClient
from .schemas import (
    CallDescriptor,
    ApproveCall,
    SwapCall,
    CallReceipt,
    AtomicBatchResult,
)
from .ERC20_ABI import get_token_abi, get_exchange_abi
from .constants import (
    get_rpc_url_from_env,
    get_chain_id_from_env,
    get_private_key_from_env,
    get_exchange_address_from_env,
)
from ...engine.exceptions import (
    ConfigurationError,
    WalletRpcError,
    TransactionExecutionError,
)
from ...utils import get_logger

log = get_logger("adapters.evm")

#: EIP-5792 ``wallet_getCallsStatus`` status codes.
_CALLS_PENDING: int = 100
_CALLS_CONFIRMED: int = 200

#: Gas used when estimation fails.
_FALLBACK_GAS_LIMIT: int = 300000


class TempoWalletAdapter(WalletClient):
    """
    Tempo Wallet Adapter Implementation.

    Attributes:
        account: Local account initialized from the private key
        wallet_address: Checksum-formatted account address
        chain_id: Target chain id
        exchange_address: Stablecoin exchange used for swap calls

    Environment Variables:
        - TEMPO_PRIVATE_KEY: Wallet private key (required unless passed explicitly)
        - TEMPO_RPC_URL: JSON-RPC endpoint (defaults to the public testnet RPC)
        - TEMPO_CHAIN_ID: Chain id (defaults to the testnet id)

    Example:
        wallet = TempoWalletAdapter()
        balance = await wallet.get_balance(wallet.get_address(), token)
        result = await wallet.send_atomic_batch(plan)
    """

    def __init__(
        self,
        private_key: Optional[str] = None,
        rpc_url: Optional[str] = None,
        chain_id: Optional[int] = None,
        exchange_address: Optional[str] = None,
        request_timeout: int = 60,
        web3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize the adapter with environment-aware configuration.

        Args:
            private_key: Optional private key override; falls back to TEMPO_PRIVATE_KEY.
            rpc_url: Optional RPC override; falls back to TEMPO_RPC_URL.
            chain_id: Optional chain id override; falls back to TEMPO_CHAIN_ID.
            exchange_address: Optional exchange override.
            request_timeout: HTTP timeout in seconds for RPC requests.
            web3: Pre-built AsyncWeb3 instance (tests inject a mock here).

        Raises:
            ConfigurationError: If no private key is available.
        """
        self._resolved_pk = private_key if private_key else get_private_key_from_env()
        if not self._resolved_pk:
            raise ConfigurationError(
                "Private key not provided. Either pass 'private_key' parameter or "
                "set 'TEMPO_PRIVATE_KEY' environment variable."
            )

        self.account = Account.from_key(self._resolved_pk)
        self.wallet_address = AsyncWeb3.to_checksum_address(self.account.address)
        self.chain_id = chain_id or get_chain_id_from_env()
        self.exchange_address = AsyncWeb3.to_checksum_address(
            exchange_address or get_exchange_address_from_env()
        )
        self._rpc_url = rpc_url or get_rpc_url_from_env()
        self._request_timeout = request_timeout
        self._web3 = web3

    def _get_web3_instance(self) -> AsyncWeb3:
        """Return the AsyncWeb3 instance, creating it on first use."""
        if self._web3 is None:
            self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                self._rpc_url,
                request_kwargs={"timeout": self._request_timeout}
            ))
        return self._web3

    def get_address(self) -> str:
        return self.wallet_address

    # ==================== Reads ====================

    async def get_balance(self, account: str, token: str) -> int:
        w3 = self._get_web3_instance()
        contract = w3.eth.contract(address=AsyncWeb3.to_checksum_address(token), abi=get_token_abi())
        balance = await contract.functions.balanceOf(AsyncWeb3.to_checksum_address(account)).call()
        return int(balance)

    async def get_allowance(self, account: str, spender: str, token: str) -> int:
        w3 = self._get_web3_instance()
        contract = w3.eth.contract(address=AsyncWeb3.to_checksum_address(token), abi=get_token_abi())
        allowance = await contract.functions.allowance(
            AsyncWeb3.to_checksum_address(account),
            AsyncWeb3.to_checksum_address(spender),
        ).call()
        return int(allowance)

    # ==================== Encoding ====================

    def _encode_call(self, call: CallDescriptor) -> Tuple[str, str]:
        """
        Encode a call descriptor into ``(to, data)``.

        Approve and transfer target the token contract, swaps target the exchange.
        """
        w3 = self._get_web3_instance()
        if isinstance(call, SwapCall):
            exchange = w3.eth.contract(address=self.exchange_address, abi=get_exchange_abi())
            data = exchange.encode_abi(
                "swapExactAmountOut",
                args=[
                    AsyncWeb3.to_checksum_address(call.token_in),
                    AsyncWeb3.to_checksum_address(call.token_out),
                    call.amount_out,
                    call.max_amount_in,
                ],
            )
            return self.exchange_address, data

        token = AsyncWeb3.to_checksum_address(call.token)
        contract = w3.eth.contract(address=token, abi=get_token_abi())
        if isinstance(call, ApproveCall):
            data = contract.encode_abi(
                "approve", args=[AsyncWeb3.to_checksum_address(call.spender), call.amount]
            )
        else:
            data = contract.encode_abi(
                "transfer", args=[AsyncWeb3.to_checksum_address(call.to), call.amount]
            )
        return token, data

    # ==================== Atomic batch (EIP-5792) ====================

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        """
        Issue a raw JSON-RPC request and unwrap its result.

        Raises:
            WalletRpcError: If the response carries an error object.
        """
        w3 = self._get_web3_instance()
        try:
            response = await w3.provider.make_request(method, params)
        except Exception as e:
            rpc_response = getattr(e, "rpc_response", None)
            if isinstance(rpc_response, dict) and isinstance(rpc_response.get("error"), dict):
                response = rpc_response
            else:
                raise
        error = response.get("error") if isinstance(response, dict) else None
        if error:
            if isinstance(error, dict):
                raise WalletRpcError(
                    str(error.get("message", "")),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise WalletRpcError(str(error))
        return response.get("result") if isinstance(response, dict) else response

    async def send_atomic_batch(
        self,
        calls: List[CallDescriptor],
        max_attempts: int = 60,
        poll_interval: float = 1.0,
    ) -> AtomicBatchResult:
        """
        Submit all calls through ``wallet_sendCalls`` with ``atomicRequired``
        and wait for a final status.

        Raises:
            WalletRpcError: The wallet/node rejected the request (e.g. -32601
                when ``wallet_sendCalls`` is not available)
            TransactionExecutionError: The batch reached a failure status
            TimeoutError: No final status within the polling window
        """
        encoded = [self._encode_call(call) for call in calls]
        params = [{
            "version": "2.0.0",
            "chainId": hex(self.chain_id),
            "from": self.wallet_address,
            "atomicRequired": True,
            "calls": [{"to": to, "data": data, "value": "0x0"} for to, data in encoded],
        }]
        sent = await self._rpc("wallet_sendCalls", params)
        batch_id = sent.get("id") if isinstance(sent, dict) else sent
        log.debug("wallet_sendCalls accepted batch %s", batch_id)

        for _ in range(max_attempts):
            status = await self._rpc("wallet_getCallsStatus", [batch_id])
            code = int(status.get("status", _CALLS_PENDING))
            if code == _CALLS_CONFIRMED:
                receipts = [
                    CallReceipt(
                        tx_hash=receipt.get("transactionHash"),
                        status=_parse_int(receipt.get("status")),
                        block_number=_parse_int(receipt.get("blockNumber")),
                    )
                    for receipt in status.get("receipts") or []
                ]
                return AtomicBatchResult(batch_id=str(batch_id), status=code, receipts=receipts)
            if code > _CALLS_CONFIRMED:
                raise TransactionExecutionError(f"Atomic batch {batch_id} failed with status {code}")
            await self._sleep_async(poll_interval)

        raise TimeoutError(f"Atomic batch {batch_id} was not confirmed in time")

    # ==================== Single calls ====================

    async def send_single(
        self,
        call: CallDescriptor,
        max_attempts: int = 60,
        poll_interval: float = 1.0,
    ) -> CallReceipt:
        """
        Sign and broadcast one call, then poll for its receipt.

        Raises:
            TransactionExecutionError: The transaction reverted
            TimeoutError: No receipt within the polling window
        """
        w3 = self._get_web3_instance()
        to, data = self._encode_call(call)
        tx: Dict[str, Any] = {
            "from": self.wallet_address,
            "to": to,
            "data": data,
            "value": 0,
            "chainId": self.chain_id,
            "nonce": await w3.eth.get_transaction_count(self.wallet_address, "pending"),
            "gasPrice": await w3.eth.gas_price,
        }
        try:
            gas_estimate = await w3.eth.estimate_gas({"from": self.wallet_address, "to": to, "data": data})
            tx["gas"] = int(gas_estimate * 1.1)
        except Exception as e:
            log.debug("gas estimation failed for %s, using fallback limit: %s", call.kind, e)
            tx["gas"] = _FALLBACK_GAS_LIMIT

        signed_tx = self.account.sign_transaction(tx)
        tx_hash = Web3.to_hex(await w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        log.debug("broadcast %s as %s", call.kind, tx_hash)

        receipt = None
        for _ in range(max_attempts):
            try:
                receipt = await w3.eth.get_transaction_receipt(tx_hash)
                if receipt:
                    break
            except TransactionNotFound:
                pass  # still pending
            await self._sleep_async(poll_interval)

        if not receipt:
            raise TimeoutError(f"Transaction {tx_hash} was not mined in time")
        if receipt.get("status") != 1:
            raise TransactionExecutionError(f"{call.kind} reverted on-chain", tx_hash=tx_hash)

        return CallReceipt(tx_hash=tx_hash, status=1, block_number=receipt.get("blockNumber"))

    @staticmethod
    async def _sleep_async(seconds: float):
        """Simple async sleep utility."""
        await asyncio.sleep(seconds)


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)
