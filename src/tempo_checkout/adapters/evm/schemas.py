"""
EVM Schema Models

Token metadata, the abstract on-chain call descriptors produced by the call
plan builder, and the receipts returned by the wallet client.

Call descriptors form a closed tagged union discriminated on ``kind``:

    ApproveCall   approve(spender, amount) on ``token``
    SwapCall      swapExactAmountOut(token_in, token_out, amount_out, max_amount_in)
    TransferCall  transfer(to, amount) on ``token``

Token identifiers are canonical contract-address strings and amounts are
smallest-unit integers.
"""

from typing import List, Literal, Optional, Union

from eth_utils import is_hex_address
from pydantic import ConfigDict, Field
from typing_extensions import Annotated

from ...schemas.bases import CanonicalModel


class Token(CanonicalModel):
    """
    Accepted stablecoin metadata.

    Attributes:
        address: Token contract address (unique identifier)
        symbol: Ticker symbol (e.g. "AlphaUSD")
        name: Display name
        decimals: Decimal precision
        faucet: Whether the testnet faucet dispenses this token
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    address: str = Field(..., description="Token contract address")
    symbol: str = Field(..., description="Token symbol")
    name: str = Field(..., description="Token name")
    decimals: int = Field(..., ge=0, description="Token decimals")
    faucet: bool = Field(default=False, description="Faucet eligible")


def _check_address(value: str) -> str:
    if not isinstance(value, str) or not value.startswith("0x") or not is_hex_address(value):
        raise ValueError(f"expected a 0x-prefixed 20-byte hex address, got {value!r}")
    return value


class ApproveCall(CanonicalModel):
    """Grant ``spender`` an allowance of ``amount`` on ``token``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["approve"] = "approve"
    token: str
    spender: str
    amount: int = Field(..., ge=0)


class SwapCall(CanonicalModel):
    """Buy exactly ``amount_out`` of ``token_out`` spending at most ``max_amount_in`` of ``token_in``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["swap"] = "swap"
    token_in: str
    token_out: str
    amount_out: int = Field(..., ge=0)
    max_amount_in: int = Field(..., ge=0)


class TransferCall(CanonicalModel):
    """Transfer ``amount`` of ``token`` to ``to``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["transfer"] = "transfer"
    token: str
    to: str
    amount: int = Field(..., ge=0)


CallDescriptor = Annotated[
    Union[ApproveCall, SwapCall, TransferCall],
    Field(discriminator="kind"),
]


def validate_call_addresses(call: CallDescriptor) -> None:
    """
    Check every address field of a call descriptor.

    Raises:
        ValueError: On the first malformed address.
    """
    if isinstance(call, ApproveCall):
        addresses = (call.token, call.spender)
    elif isinstance(call, SwapCall):
        addresses = (call.token_in, call.token_out)
    else:
        addresses = (call.token, call.to)
    for address in addresses:
        _check_address(address)


class CallReceipt(CanonicalModel):
    """
    Receipt for one submitted call.

    Attributes:
        tx_hash: Transaction hash, None when the wallet did not surface one
        status: 1 for success, 0 for revert, None when unknown
        block_number: Inclusion block
    """

    tx_hash: Optional[str] = None
    status: Optional[int] = None
    block_number: Optional[int] = None


class AtomicBatchResult(CanonicalModel):
    """
    Result of an atomic batch submission.

    Attributes:
        batch_id: Wallet-assigned bundle id (EIP-5792 ``id``)
        status: Wallet-reported status code (200 = confirmed)
        receipts: Receipts in call order; may be empty or lack hashes
    """

    batch_id: Optional[str] = None
    status: Optional[int] = None
    receipts: List[CallReceipt] = Field(default_factory=list)

    def first_tx_hash(self) -> Optional[str]:
        """
        First transaction hash in receipt order.

        Receipts without a hash are skipped; every receipt of an atomic batch
        belongs to the same settlement.
        """
        for receipt in self.receipts:
            if receipt.tx_hash:
                return receipt.tx_hash
        return None
