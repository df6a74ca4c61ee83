"""
Tempo Chain Configuration and Token Catalog

Provides the static registry of accepted stablecoins, the chain defaults,
environment-aware configuration getters and the canonical conversions between
human-readable amounts and smallest-unit integers.
"""

import os
from typing import Dict, List, Optional
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, Field
import dotenv

from .schemas import Token
from ...engine.exceptions import ConfigurationError, TokenNotFoundError

dotenv.load_dotenv()


class TempoChainConfig(BaseModel):
    """Tempo network configuration."""
    chain_id: int
    name: str
    public_rpc_url: str = Field(..., description="Public RPC endpoint")
    explorer_url: str = Field(..., description="Block explorer URL")
    fee_token: str = Field(..., description="Token used to pay transaction fees")
    exchange_address: str = Field(..., description="Stablecoin exchange contract")


TEMPO_TESTNET = TempoChainConfig(
    chain_id=42429,
    name="Tempo Testnet",
    public_rpc_url="https://rpc.testnet.tempo.xyz",
    explorer_url="https://explore.tempo.xyz",
    fee_token="0x20c0000000000000000000000000000000000001",
    exchange_address="0xdec0000000000000000000000000000000000000",
)

#: Fixed slippage tolerance applied to every conversion quote (1%).
SLIPPAGE_BPS: int = 100

#: Basis-point denominator.
BPS_DENOMINATOR: int = 10_000


# Raw catalog data; loaded once into immutable Token models below.
_ACCEPTED_TOKENS_DATA: List[Dict] = [
    {
        "symbol": "pathUSD",
        "name": "pathUSD",
        "address": "0x20c0000000000000000000000000000000000000",
        "decimals": 6,
        "faucet": False,
    },
    {
        "symbol": "AlphaUSD",
        "name": "AlphaUSD",
        "address": "0x20c0000000000000000000000000000000000001",
        "decimals": 6,
        "faucet": True,
    },
    {
        "symbol": "BetaUSD",
        "name": "BetaUSD",
        "address": "0x20c0000000000000000000000000000000000002",
        "decimals": 6,
        "faucet": True,
    },
    {
        "symbol": "ThetaUSD",
        "name": "ThetaUSD",
        "address": "0x20c0000000000000000000000000000000000003",
        "decimals": 6,
        "faucet": True,
    },
]

ACCEPTED_TOKENS: List[Token] = [Token(**data) for data in _ACCEPTED_TOKENS_DATA]


class TokenCatalog:
    """
    Static registry of accepted tokens keyed by contract address.

    Lookups are case-insensitive on the address. A miss raises
    ``TokenNotFoundError``; callers must never fall back to guessed decimals.

    Example:
        catalog = TokenCatalog()
        token = catalog.lookup("0x20c0000000000000000000000000000000000001")
        token.symbol  # "AlphaUSD"
    """

    def __init__(self, tokens: Optional[List[Token]] = None):
        self._tokens = list(ACCEPTED_TOKENS if tokens is None else tokens)
        self._by_address = {t.address.lower(): t for t in self._tokens}
        if len(self._by_address) != len(self._tokens):
            raise ValueError("Token catalog contains duplicate addresses")

    def lookup(self, address: str) -> Token:
        if not isinstance(address, str):
            raise TokenNotFoundError(f"Unknown token {address!r}")
        token = self._by_address.get(address.strip().lower())
        if token is None:
            raise TokenNotFoundError(f"Unknown token {address!r}")
        return token

    def by_symbol(self, symbol: str) -> Token:
        wanted = symbol.strip().lower()
        for token in self._tokens:
            if token.symbol.lower() == wanted:
                return token
        raise TokenNotFoundError(f"Unknown token symbol {symbol!r}")

    def tokens(self) -> List[Token]:
        return list(self._tokens)

    def faucet_tokens(self) -> List[Token]:
        return [t for t in self._tokens if t.faucet]

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.strip().lower() in self._by_address


def same_token(a: str, b: str) -> bool:
    """Compare two token addresses ignoring checksum casing."""
    return a.strip().lower() == b.strip().lower()


def get_rpc_url_from_env() -> str:
    """
    Resolve the JSON-RPC endpoint.

    Environment Variable:
        - TEMPO_RPC_URL: Overrides the public testnet RPC endpoint
    """
    return os.getenv("TEMPO_RPC_URL") or TEMPO_TESTNET.public_rpc_url


def get_chain_id_from_env() -> int:
    """
    Resolve the chain id.

    Environment Variable:
        - TEMPO_CHAIN_ID: Integer chain id, defaults to the testnet id

    Raises:
        ConfigurationError: If the variable is set but not a positive integer.
    """
    raw = os.getenv("TEMPO_CHAIN_ID")
    if not raw:
        return TEMPO_TESTNET.chain_id
    try:
        chain_id = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"TEMPO_CHAIN_ID must be an integer, got {raw!r}") from e
    if chain_id <= 0:
        raise ConfigurationError(f"TEMPO_CHAIN_ID must be positive, got {chain_id}")
    return chain_id


def get_private_key_from_env() -> Optional[str]:
    """
    Load the wallet private key used by the server-side wallet adapter.

    Environment Variable:
        - TEMPO_PRIVATE_KEY: 0x-prefixed hex private key

    Note:
        The private key should be stored securely in environment variables
        and never committed to version control.
    """
    return os.getenv("TEMPO_PRIVATE_KEY")


def get_exchange_address_from_env() -> str:
    """Stablecoin exchange address (``TEMPO_EXCHANGE_ADDRESS`` override)."""
    return os.getenv("TEMPO_EXCHANGE_ADDRESS") or TEMPO_TESTNET.exchange_address


def get_fee_token_from_env() -> str:
    """Fee token address (``TEMPO_FEE_TOKEN`` override)."""
    return os.getenv("TEMPO_FEE_TOKEN") or TEMPO_TESTNET.fee_token


def get_supabase_settings_from_env() -> Dict[str, str]:
    """
    Load persistence service credentials.

    Environment Variables:
        - SUPABASE_URL: Project URL (e.g. https://xyz.supabase.co)
        - SUPABASE_ANON_KEY: API key sent as ``apikey`` and bearer token

    Raises:
        ConfigurationError: If either variable is missing.
    """
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        raise ConfigurationError("Supabase is not configured.")
    return {"url": url.rstrip("/"), "key": key}


def is_supabase_configured() -> bool:
    return bool(os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_ANON_KEY"))


def amount_to_value(*, amount: int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    This is the canonical conversion used for invoice amounts. Scaling is exact:
    floats are rejected and fractional smallest units raise instead of rounding.

    Args:
        amount: Human-readable amount (e.g. "100.00"). Accepts int/str/Decimal.
        decimals: Token decimals (e.g. 6).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or isinstance(decimals, bool) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    if isinstance(amount, (float, bool)):
        raise ValueError(f"amount must be a decimal string, int or Decimal, got {type(amount).__name__}")

    try:
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec_amount.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount.scaleb(decimals)

    # Require exact smallest-unit representability (no fractional smallest units)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals} "
            f"(would create fractional smallest units)"
        )

    return int(scaled)


def value_to_amount(*, value: int | str | Decimal, decimals: int) -> Decimal:
    """Convert a smallest-unit integer `value` into a human-readable `Decimal` amount.

    Args:
        value: Smallest-unit integer value (e.g. 1230000 for 1.23). Accepts int/str/Decimal.
        decimals: Token decimals (e.g. 6).

    Raises:
        ValueError: If inputs are invalid.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        dec_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid value: {value!r}") from e

    if dec_value < 0:
        raise ValueError("value must be non-negative")

    if dec_value != dec_value.to_integral_value():
        raise ValueError("value must be an integer in smallest units")

    return dec_value.scaleb(-decimals)
