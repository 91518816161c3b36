"""Identity resolution: canonical product ids, variant identities, cart eligibility."""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from cartsync.config import settings
from cartsync.schemas.cart import VariantIdentity
from cartsync.schemas.product import ProductSnapshot
from cartsync.utils.price import NO_VARIANT, VariantSelector, resolve_variant


@dataclass(frozen=True)
class CartIdentity:
    """What the session collaborator tells us about the current user."""
    authenticated: bool = False
    user_type: Optional[str] = None

    @property
    def cart_eligible(self) -> bool:
        """Whether this identity is allowed a server-backed cart."""
        return self.authenticated and self.user_type == settings.cart_eligible_user_type


GUEST = CartIdentity()


def normalize_product(product: Union[ProductSnapshot, Mapping[str, Any]]) -> ProductSnapshot:
    """
    Coerce a catalog record into a snapshot whose ``id`` is always set.

    Both identifier fields are kept so either can later address the line.

    Raises:
        ValueError: If the record carries neither identifier
    """
    if not isinstance(product, ProductSnapshot):
        product = ProductSnapshot.model_validate(dict(product))
    if not product.canonical_id:
        raise ValueError("Product has no identifier")
    if product.id is None:
        product = product.model_copy(update={"id": product.canonical_id})
    return product


def variant_identity(product: ProductSnapshot, selector: VariantSelector = None) -> VariantIdentity:
    """
    Resolve the variant identity a selector refers to for ``product``.

    A string selector that matches none of the product's variants is kept as
    both id and title, since it is unknown which of the two it denotes.
    """
    if isinstance(selector, Mapping):
        selector = selector.get("_id") or selector.get("id")
    variant = resolve_variant(product, selector)
    if variant is not None:
        return VariantIdentity(id=variant.canonical_id, title=variant.title)
    if isinstance(selector, str) and selector:
        return VariantIdentity(id=selector, title=selector)
    return VariantIdentity()


def requested_variant(variant_id: Optional[str] = None, variant_title: Optional[str] = None) -> VariantIdentity:
    """Build the identity described by explicit id/title discriminators."""
    return VariantIdentity(id=variant_id or None, title=variant_title or None)


def price_selector(variant: VariantIdentity) -> VariantSelector:
    """Selector that prices a line with exactly the variant it holds."""
    if variant.is_empty:
        return NO_VARIANT
    return variant.id or variant.title
