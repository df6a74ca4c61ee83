"""
Stablecoin exchange quote service.

Reads exact-output quotes from the exchange contract. The pricing itself is
the exchange's concern; this module only asks it.
"""

from typing import Optional

from web3 import AsyncWeb3

from ..bases import QuoteService
from .ERC20_ABI import get_exchange_abi
from .constants import get_rpc_url_from_env, get_exchange_address_from_env


class StablecoinExchangeQuoter(QuoteService):
    """
    ``QuoteService`` backed by ``quoteSwapExactAmountOut`` on the exchange.

    Args:
        web3: Optional AsyncWeb3 instance, built from ``rpc_url`` otherwise
        rpc_url: RPC override, defaults to TEMPO_RPC_URL / the public testnet RPC
        exchange_address: Exchange override, defaults to TEMPO_EXCHANGE_ADDRESS
    """

    def __init__(
        self,
        web3: Optional[AsyncWeb3] = None,
        rpc_url: Optional[str] = None,
        exchange_address: Optional[str] = None,
        request_timeout: int = 30,
    ):
        self._web3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            rpc_url or get_rpc_url_from_env(),
            request_kwargs={"timeout": request_timeout},
        ))
        self.exchange_address = AsyncWeb3.to_checksum_address(
            exchange_address or get_exchange_address_from_env()
        )

    async def quote_amount_in(self, token_in: str, token_out: str, amount_out: int) -> int:
        contract = self._web3.eth.contract(address=self.exchange_address, abi=get_exchange_abi())
        amount_in = await contract.functions.quoteSwapExactAmountOut(
            AsyncWeb3.to_checksum_address(token_in),
            AsyncWeb3.to_checksum_address(token_out),
            amount_out,
        ).call()
        return int(amount_in)
