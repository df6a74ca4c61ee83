"""
Exception and Error Definitions Module

Defines the exception hierarchy raised by the settlement pipeline. Every
exception carries a stable ``kind`` string so the outer surfaces (``settle``
and the HTTP service) can report ``{kind, message}`` without inspecting
class names.

Exception Hierarchy:
    CheckoutError (root)
    ├── ConfigurationError
    │   └── TokenNotFoundError
    ├── QuoteUnavailableError
    │   └── PlanUnavailableError
    ├── InsufficientBalanceError
    ├── UnsupportedBatchingError
    ├── ExecutionFailedError
    ├── HashMissingError
    ├── AlreadySettledError
    ├── InvoiceNotOpenError
    ├── InvoiceNotFoundError
    ├── AttemptCancelledError
    ├── PersistenceError
    └── BlockchainInteractionError
        ├── WalletRpcError
        └── TransactionExecutionError
"""

from typing import Any, Optional


class CheckoutError(Exception):
    """
    Root exception class for all project-specific exceptions.

    Attributes:
        kind: Stable machine-readable error category.
        message: Human-readable description, surfaced verbatim.
    """

    kind: str = "checkout_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__.strip().splitlines()[0]

    def __str__(self) -> str:
        return self.message


class ConfigurationError(CheckoutError):
    """
    Raised when a required external service or setting is unavailable.

    This includes scenarios such as:
    - Missing RPC URL or private key
    - Persistence service not configured
    - Wallet client not supplied to the orchestrator
    """

    kind = "configuration_error"


class TokenNotFoundError(ConfigurationError):
    """
    Raised when a token address is not in the catalog.

    An unknown token blocks payment rather than proceeding with guessed decimals.
    """


class QuoteUnavailableError(CheckoutError):
    """
    Raised when a quote or a balance/allowance read cannot be obtained.

    Payment is disabled, never attempted blind, while this condition holds.
    """

    kind = "quote_unavailable"


class PlanUnavailableError(QuoteUnavailableError):
    """Cannot build plan: a required amount is unresolved."""


class InsufficientBalanceError(CheckoutError):
    """
    Raised when the payer's balance cannot cover the required amount.

    Computed client-side before anything is submitted.

    Attributes:
        required: Amount required in smallest units
        available: Amount available in smallest units
    """

    kind = "insufficient_balance"

    def __init__(self, message: str = "", required: int = 0, available: int = 0) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class UnsupportedBatchingError(CheckoutError):
    """Wallet does not support atomic batching; triggers sequential fallback."""

    kind = "unsupported_batching"


class ExecutionFailedError(CheckoutError):
    """
    Raised when a call in the plan failed.

    Attributes:
        step: Index of the failing call in sequential mode, None for an atomic batch
        call_kind: Kind of the failing call ("approve", "swap", "transfer")
        cause: Original error raised by the wallet client
    """

    kind = "execution_failed"

    def __init__(
        self,
        message: str = "",
        step: Optional[int] = None,
        call_kind: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.call_kind = call_kind
        self.cause = cause


class HashMissingError(CheckoutError):
    """Execution confirmed without a hash."""

    kind = "hash_missing"


class AlreadySettledError(CheckoutError):
    """
    Raised when the conditional invoice update matched no open invoice.

    Not a failure in the conventional sense: the caller should re-fetch the
    invoice's authoritative state.
    """

    kind = "already_settled"


class InvoiceNotOpenError(CheckoutError):
    """Invoice is void or expired and can no longer be paid."""

    kind = "invoice_not_open"


class InvoiceNotFoundError(CheckoutError):
    """Invoice does not exist."""

    kind = "invoice_not_found"


class AttemptCancelledError(CheckoutError):
    """Payment attempt was superseded or cancelled."""

    kind = "cancelled"


class PersistenceError(CheckoutError):
    """
    Raised when the persistence service rejects or fails a write.

    Attributes:
        status_code: HTTP status returned by the service, when available
    """

    kind = "persistence_error"

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BlockchainInteractionError(CheckoutError):
    """
    Raised when blockchain interaction (RPC call) fails.

    This includes scenarios such as:
    - RPC call timeout
    - Network connectivity issues
    - Contract call revert
    """

    kind = "blockchain_error"


class WalletRpcError(BlockchainInteractionError):
    """
    JSON-RPC error object returned by the wallet or node.

    Attributes:
        code: JSON-RPC / EIP-1193 / EIP-5792 error code
        data: Optional ``data`` member of the error object
    """

    def __init__(self, message: str = "", code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class TransactionExecutionError(BlockchainInteractionError):
    """
    Raised when a broadcast transaction reverted on-chain.

    Attributes:
        tx_hash: Transaction hash of the reverted transaction
    """

    def __init__(self, message: str = "", tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
