"""
Abstract Base Classes for External Collaborators

Defines the interfaces the settlement pipeline consumes: the wallet/blockchain
client and the exchange quote service. The orchestrator only ever talks to
these abstractions; concrete implementations (``TempoWalletAdapter``,
``StablecoinExchangeQuoter``) and test stubs plug in behind them.

Core Classes:
    - WalletClient: balance/allowance reads, atomic batch and single-call submission
    - QuoteService: exact-output exchange quotes
"""

from abc import ABC, abstractmethod
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .evm.schemas import CallDescriptor, CallReceipt, AtomicBatchResult


class WalletClient(ABC):
    """
    Abstract wallet/blockchain client.

    Token identifiers are canonical contract-address strings and all amounts
    are smallest-unit integers.

    Key Responsibilities:
    1. get_balance / get_allowance: read-only token state
    2. send_atomic_batch: submit a call plan as one all-or-nothing unit
    3. send_single: submit one call and wait for its receipt
    """

    @abstractmethod
    def get_address(self) -> str:
        """Address of the connected account."""

    @abstractmethod
    async def get_balance(self, account: str, token: str) -> int:
        """
        Query ``account``'s balance of ``token``.

        Returns:
            int: Balance in smallest units

        Raises:
            Any exception on read failure; callers treat it as "balance unavailable".
        """

    @abstractmethod
    async def get_allowance(self, account: str, spender: str, token: str) -> int:
        """
        Query the amount of ``token`` that ``spender`` may move on ``account``'s behalf.

        Returns:
            int: Allowance in smallest units
        """

    @abstractmethod
    async def send_atomic_batch(self, calls: List["CallDescriptor"]) -> "AtomicBatchResult":
        """
        Submit every call as one unit, requesting that all succeed or none do.

        Returns:
            AtomicBatchResult: Wallet status and per-call receipts

        Raises:
            Any exception on failure. Errors signalling that batching or
            atomicity is unsupported must be recognisable by
            ``is_unsupported_batching``.
        """

    @abstractmethod
    async def send_single(self, call: "CallDescriptor") -> "CallReceipt":
        """
        Submit one call and wait until it is mined.

        Returns:
            CallReceipt: Receipt carrying the transaction hash

        Raises:
            Any exception if the call could not be submitted or reverted.
        """


class QuoteService(ABC):
    """Abstract exchange quote service. Quotes are point-in-time and non-binding."""

    @abstractmethod
    async def quote_amount_in(self, token_in: str, token_out: str, amount_out: int) -> int:
        """
        Amount of ``token_in`` required to receive exactly ``amount_out`` of ``token_out``.

        Returns:
            int: Required input in smallest units
        """
