"""Pydantic schemas shared by the store, gateway and routes."""
from .product import ProductSnapshot, Variant
from .cart import (
    CartAggregate,
    CartLine,
    CartSnapshot,
    FeeFields,
    GeoPoint,
    VariantIdentity,
)

__all__ = [
    "ProductSnapshot",
    "Variant",
    "CartAggregate",
    "CartLine",
    "CartSnapshot",
    "FeeFields",
    "GeoPoint",
    "VariantIdentity",
]
