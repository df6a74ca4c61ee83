from .apps import CheckoutServer, SettleRequest, error_response
from .flows import setup_event_bus

__all__ = [
    "CheckoutServer",
    "SettleRequest",
    "error_response",
    "setup_event_bus",
]
