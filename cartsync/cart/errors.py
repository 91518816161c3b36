"""Errors raised by the cart engine."""
from typing import Optional


class CartError(Exception):
    """Base class for cart engine errors."""


class GatewayError(CartError):
    """The remote cart service could not complete a call."""

    def __init__(self, message: str, status_code: Optional[int] = None, server_message: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(message)


DEFAULT_MESSAGES = {
    "add": "Failed to add to cart",
    "update": "Failed to update quantity",
    "remove": "Failed to remove item from cart",
    "clear": "Failed to clear cart",
    "refresh": "Failed to load cart",
}


class CartOperationError(CartError):
    """
    A cart mutation failed remotely and local state was recovered.

    Non-fatal: the cart has already been rolled back (or reconciled), and the
    user may simply retry.
    """

    def __init__(self, action: str, message: Optional[str] = None, cause: Optional[Exception] = None):
        self.action = action
        self.message = message or DEFAULT_MESSAGES.get(action, "Cart operation failed")
        self.cause = cause
        super().__init__(self.message)

    @classmethod
    def from_gateway(cls, action: str, error: GatewayError) -> "CartOperationError":
        return cls(action, error.server_message, cause=error)
