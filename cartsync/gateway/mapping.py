"""Translation of cart API payloads into snapshots."""
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from cartsync.cart.identity import variant_identity
from cartsync.schemas.cart import CartLine, CartSnapshot, FeeFields
from cartsync.schemas.product import ProductSnapshot
from cartsync.utils.price import NO_VARIANT

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def map_fees(data: Dict[str, Any]) -> FeeFields:
    """Pick the server-computed fee fields out of a cart payload."""
    return FeeFields(
        estimated_delivery_fee=_as_number(data.get("estimatedDeliveryFee")),
        platform_fee=_as_number(data.get("platformFee")),
        free_delivery_threshold=_as_number(data.get("freeDeliveryThreshold")),
        backend_total=_as_number(data.get("total"))
    )


def map_line(item: Dict[str, Any]) -> Optional[CartLine]:
    """
    Map one server line to a cart line.

    Returns None for lines without a product or that fail validation.
    """
    raw_product = item.get("product")
    if not isinstance(raw_product, dict):
        return None
    try:
        product = ProductSnapshot.model_validate(raw_product)
        if product.id is None and product.storage_id:
            product = product.model_copy(update={"id": product.storage_id})
        variation = item.get("variation")
        variant = variant_identity(product, variation if variation else NO_VARIANT)
        return CartLine(
            line_id=str(item["_id"]) if item.get("_id") else item.get("id"),
            product=product,
            quantity=int(item.get("quantity") or 0),
            variant=variant
        )
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"[CART GATEWAY] Dropping unreadable cart line: {e}")
        return None


def map_lines(items: List[Dict[str, Any]]) -> List[CartLine]:
    lines = []
    for item in items or []:
        line = map_line(item)
        if line is not None:
            lines.append(line)
    return lines


def map_snapshot(data: Optional[Dict[str, Any]]) -> Optional[CartSnapshot]:
    """
    Map the ``data`` object of a cart response.

    Returns:
        CartSnapshot, or None when the payload carries no item list
    """
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        return None
    return CartSnapshot(items=tuple(map_lines(data["items"])), fees=map_fees(data))
