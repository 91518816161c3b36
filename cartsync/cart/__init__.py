"""Cart synchronization engine."""
from .errors import CartError, CartOperationError, GatewayError
from .identity import GUEST, CartIdentity, normalize_product, variant_identity
from .store import CartStore

__all__ = [
    "CartError",
    "CartOperationError",
    "GatewayError",
    "GUEST",
    "CartIdentity",
    "normalize_product",
    "variant_identity",
    "CartStore"
]
