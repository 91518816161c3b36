"""Contract of the remote, authoritative cart."""
from abc import ABC, abstractmethod
from typing import Optional
from cartsync.schemas.cart import CartSnapshot, GeoPoint


class RemoteCartGateway(ABC):
    """
    The five operations the cart store needs from the server.

    Implementations raise ``GatewayError`` for any failure. Mutations return
    None when the server confirmed the call without sending a cart back, in
    which case the caller keeps its optimistic state.
    """

    @abstractmethod
    async def fetch(self, geo: Optional[GeoPoint] = None) -> CartSnapshot:
        """Fetch the authoritative cart."""

    @abstractmethod
    async def add(
        self,
        product_id: str,
        quantity: int = 1,
        variation: Optional[str] = None,
        geo: Optional[GeoPoint] = None
    ) -> Optional[CartSnapshot]:
        """Add ``quantity`` of a product (and variant) to the cart."""

    @abstractmethod
    async def update_quantity(
        self,
        line_id: str,
        quantity: int,
        geo: Optional[GeoPoint] = None
    ) -> Optional[CartSnapshot]:
        """Set the quantity of a server-side line."""

    @abstractmethod
    async def remove(self, line_id: str, geo: Optional[GeoPoint] = None) -> Optional[CartSnapshot]:
        """Remove a server-side line."""

    @abstractmethod
    async def clear(self) -> None:
        """Empty the server-side cart."""

    async def aclose(self) -> None:
        """Release transport resources, if any."""
