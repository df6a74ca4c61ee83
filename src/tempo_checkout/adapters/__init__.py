from .bases import WalletClient, QuoteService
from .evm import (
    TempoWalletAdapter,
    StablecoinExchangeQuoter,
    BalanceReader,
    TokenCatalog,
)

__all__ = [
    "WalletClient",
    "QuoteService",
    "TempoWalletAdapter",
    "StablecoinExchangeQuoter",
    "BalanceReader",
    "TokenCatalog",
]
