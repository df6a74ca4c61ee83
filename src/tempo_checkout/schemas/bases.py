"""
Base Schema Models for the checkout system

Defines the base model and the status enumerations shared by invoices,
payments and the batch execution engine.

Core Classes:
    - CanonicalModel: Shared Pydantic base model
    - InvoiceStatus: Invoice lifecycle states
    - PaymentStatus: Payment audit record states
    - ExecutionMode: How a call plan was executed
    - EngineState: Batch execution engine states

Dependencies:
    - pydantic: For data validation and serialization
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """Base model for all checkout schemas; fields may be populated by name or alias."""

    model_config = ConfigDict(populate_by_name=True)


class InvoiceStatus(str, Enum):
    """
    Invoice lifecycle states.

    Attributes:
        OPEN: Awaiting payment, the only state settlement may leave
        PAID: Settled on-chain and recorded (terminal)
        VOID: Cancelled by the merchant (terminal)
        EXPIRED: No longer payable (terminal)
    """
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not InvoiceStatus.OPEN


class PaymentStatus(str, Enum):
    """Payment audit record states."""
    CONFIRMED = "confirmed"


class ExecutionMode(str, Enum):
    """How the call plan reached the chain."""
    ATOMIC = "atomic"
    SEQUENTIAL = "sequential"


class EngineState(str, Enum):
    """
    Batch execution engine states.

    ``IDLE -> SUBMITTING_ATOMIC -> {SETTLED | FALLBACK_REQUIRED}``
    ``FALLBACK_REQUIRED -> SUBMITTING_SEQUENTIAL -> {SETTLED | FAILED}``
    ``SUBMITTING_ATOMIC -> FAILED`` for unrecognised errors.
    """
    IDLE = "idle"
    SUBMITTING_ATOMIC = "submitting_atomic"
    FALLBACK_REQUIRED = "fallback_required"
    SUBMITTING_SEQUENTIAL = "submitting_sequential"
    SETTLED = "settled"
    FAILED = "failed"
