"""Price resolution for products and their variants."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union
from cartsync.schemas.product import ProductSnapshot, Variant


class _NoVariant:
    """Selector meaning "explicitly no variant"; disables the first-variant default."""

    def __repr__(self):
        return "NO_VARIANT"


NO_VARIANT = _NoVariant()

VariantSelector = Union[int, str, _NoVariant, None]


@dataclass(frozen=True)
class PriceInfo:
    """Resolved prices for display."""
    display_price: float = 0.0
    reference_price: float = 0.0
    discount_percent: int = 0
    has_discount: bool = False


def resolve_variant(
    product: Optional[ProductSnapshot],
    selector: VariantSelector = None
) -> Optional[Variant]:
    """
    Resolve a variant selector against a product's variant list.

    Args:
        product: Product snapshot (may be None)
        selector: Index into ``product.variations``, a variant id or title,
            ``None`` when the caller gave no selector, or ``NO_VARIANT``

    Returns:
        The resolved variant, or None. Only an absent selector falls back to
        the first variant; a selector that does not resolve yields None.
    """
    if product is None or not product.variations or selector is NO_VARIANT:
        return None
    variations = product.variations

    if selector is None:
        return variations[0]

    if isinstance(selector, int) and not isinstance(selector, bool):
        if 0 <= selector < len(variations):
            return variations[selector]
        return None

    if isinstance(selector, str) and selector:
        for variant in variations:
            if selector in (variant.storage_id, variant.id):
                return variant
        for variant in variations:
            if variant.title == selector:
                return variant
    return None


def _percent_off(reference: float, display: float) -> int:
    ratio = (Decimal(str(reference)) - Decimal(str(display))) * 100 / Decimal(str(reference))
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_price(
    product: Optional[ProductSnapshot],
    selector: VariantSelector = None
) -> PriceInfo:
    """
    Compute display price, reference (MRP) price and discount for a product.

    Priority for the display price: variant discount, product discount,
    variant price, product price. Priority for the reference price: variant
    price, product MRP, legacy compare-at price, product price.

    Args:
        product: Product snapshot, or None
        selector: Variant selector, see ``resolve_variant``

    Returns:
        PriceInfo; all zeros for a missing product
    """
    if product is None:
        return PriceInfo()

    variant = resolve_variant(product, selector)

    if variant is not None and variant.disc_price and variant.disc_price > 0:
        display = variant.disc_price
    elif product.disc_price and product.disc_price > 0:
        display = product.disc_price
    elif variant is not None and variant.price:
        display = variant.price
    else:
        display = product.price or 0.0

    if variant is not None and variant.price:
        reference = variant.price
    else:
        reference = product.mrp or product.compare_at_price or product.price or 0.0

    display = float(display)
    reference = float(reference)
    has_discount = reference > display

    return PriceInfo(
        display_price=display,
        reference_price=reference,
        discount_percent=_percent_off(reference, display) if has_discount else 0,
        has_discount=has_discount
    )
