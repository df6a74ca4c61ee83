from .adapter import TempoWalletAdapter
from .exchange import StablecoinExchangeQuoter
from .readers import BalanceReader
from .constants import (
    ACCEPTED_TOKENS,
    TEMPO_TESTNET,
    SLIPPAGE_BPS,
    TokenCatalog,
    amount_to_value,
    value_to_amount,
)
from .schemas import (
    Token,
    ApproveCall,
    SwapCall,
    TransferCall,
    CallDescriptor,
    CallReceipt,
    AtomicBatchResult,
)

__all__ = [
    "TempoWalletAdapter",
    "StablecoinExchangeQuoter",
    "BalanceReader",
    "ACCEPTED_TOKENS",
    "TEMPO_TESTNET",
    "SLIPPAGE_BPS",
    "TokenCatalog",
    "amount_to_value",
    "value_to_amount",
    "Token",
    "ApproveCall",
    "SwapCall",
    "TransferCall",
    "CallDescriptor",
    "CallReceipt",
    "AtomicBatchResult",
]
