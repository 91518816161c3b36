"""Cart line, snapshot and aggregate schemas."""
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field
from cartsync.schemas.product import ProductSnapshot


class VariantIdentity(BaseModel):
    """
    Identity of the variant a cart line refers to.

    Two identities match when their ids are equal or their titles are equal.
    Only values that are actually set take part in the comparison, and an
    empty identity ("no variant") only matches another empty identity.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    title: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.id and not self.title

    def matches(self, other: "VariantIdentity") -> bool:
        if other.is_empty or self.is_empty:
            return self.is_empty and other.is_empty
        if other.id and self.id == other.id:
            return True
        return bool(other.title) and self.title == other.title

    @property
    def discriminator(self) -> Optional[str]:
        """Value sent to the server and used in pending-operation keys."""
        return self.id or self.title


class GeoPoint(BaseModel):
    """Optional location hint forwarded to fee-affecting gateway calls."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CartLine(BaseModel):
    """A single line in the cart."""
    model_config = ConfigDict(frozen=True)

    line_id: Optional[str] = Field(None, description="Remote line id, set once synced with the server")
    product: ProductSnapshot
    quantity: int = Field(..., ge=1)
    variant: VariantIdentity = Field(default_factory=VariantIdentity)

    @property
    def product_id(self) -> Optional[str]:
        return self.product.canonical_id

    def matches(self, product_id: str, variant: VariantIdentity) -> bool:
        return self.product.has_id(product_id) and self.variant.matches(variant)


class FeeFields(BaseModel):
    """Server-computed values kept verbatim across reconciliation."""
    model_config = ConfigDict(frozen=True)

    estimated_delivery_fee: Optional[float] = None
    platform_fee: Optional[float] = None
    free_delivery_threshold: Optional[float] = None
    backend_total: Optional[float] = None


class CartSnapshot(BaseModel):
    """Authoritative cart state returned by the remote gateway."""
    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLine, ...] = ()
    fees: FeeFields = Field(default_factory=FeeFields)


class CartAggregate(BaseModel):
    """Derived view of the cart; recomputed from the line list on every read."""
    items: List[CartLine]
    item_count: int
    subtotal: float
    estimated_delivery_fee: Optional[float] = None
    platform_fee: Optional[float] = None
    free_delivery_threshold: Optional[float] = None
    backend_total: Optional[float] = None
    loading: bool = False
