"""Utility functions for the cart engine."""
from .price import NO_VARIANT, PriceInfo, calculate_price, resolve_variant
from .pending import PendingOperations, operation_key
from .events import AddEvent, AddEventChannel, OriginHint
from .timeouts import call_with_timeout

__all__ = [
    "NO_VARIANT",
    "PriceInfo",
    "calculate_price",
    "resolve_variant",
    "PendingOperations",
    "operation_key",
    "AddEvent",
    "AddEventChannel",
    "OriginHint",
    "call_with_timeout"
]
