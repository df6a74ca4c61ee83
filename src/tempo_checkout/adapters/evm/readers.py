"""
Balance & Allowance Reader

Read-only token queries scoped to a single payment attempt. Results are cached
per ``(account, token)`` and ``(account, spender, token)`` so repeated checks
within one attempt hit the chain once; the cache must be invalidated as soon as
a mutating call (approve/swap/transfer) has been submitted.
"""

import asyncio
from typing import Dict, Optional, Tuple

from ..bases import WalletClient
from ...engine.exceptions import QuoteUnavailableError
from ...utils import get_logger

log = get_logger("adapters.readers")


class BalanceReader:
    """
    Per-attempt cached balance and allowance reads.

    Any failure of the underlying client is reported as
    ``QuoteUnavailableError`` so the caller disables payment instead of
    attempting it blind.

    Example:
        reader = BalanceReader(wallet)
        balance, allowance = await reader.read_both(payer, exchange, token)
        ...
        reader.invalidate()  # after submitting an approval
    """

    def __init__(self, client: WalletClient):
        self._client = client
        self._balances: Dict[Tuple[str, str], int] = {}
        self._allowances: Dict[Tuple[str, str, str], int] = {}

    async def get_balance(self, account: str, token: str) -> int:
        key = (account.lower(), token.lower())
        if key in self._balances:
            return self._balances[key]
        try:
            balance = int(await self._client.get_balance(account, token))
        except Exception as e:
            log.warning("balance read failed for %s on %s: %s", account, token, e)
            raise QuoteUnavailableError(f"Balance unavailable: {e}") from e
        self._balances[key] = balance
        return balance

    async def get_allowance(self, account: str, spender: str, token: str) -> int:
        key = (account.lower(), spender.lower(), token.lower())
        if key in self._allowances:
            return self._allowances[key]
        try:
            allowance = int(await self._client.get_allowance(account, spender, token))
        except Exception as e:
            log.warning("allowance read failed for %s -> %s on %s: %s", account, spender, token, e)
            raise QuoteUnavailableError(f"Allowance unavailable: {e}") from e
        self._allowances[key] = allowance
        return allowance

    async def read_both(
        self,
        account: str,
        spender: Optional[str],
        token: str,
    ) -> Tuple[int, Optional[int]]:
        """
        Read balance and (when ``spender`` is given) allowance concurrently.

        Both reads complete before this returns. If either fails the first
        failure is raised as ``QuoteUnavailableError``.
        """
        if spender is None:
            return await self.get_balance(account, token), None
        results = await asyncio.gather(
            self.get_balance(account, token),
            self.get_allowance(account, spender, token),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        balance, allowance = results
        return balance, allowance

    def invalidate(self) -> None:
        """Drop every cached value; subsequent reads go back to the chain."""
        self._balances.clear()
        self._allowances.clear()
