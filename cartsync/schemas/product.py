"""Product snapshot schemas captured into cart lines."""
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Variant(BaseModel):
    """A purchasable variant of a product (pack size, weight, colour...)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Public variant identifier")
    storage_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("storage_id", "_id"),
        description="Storage-level variant identifier"
    )
    title: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("title", "name", "value", "pack"),
        description="Human-readable variant label"
    )
    price: Optional[float] = Field(None, ge=0, description="Variant list price")
    disc_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("disc_price", "discPrice"),
        description="Variant discounted price"
    )

    @field_validator("id", "storage_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @property
    def canonical_id(self) -> Optional[str]:
        return self.storage_id or self.id


class ProductSnapshot(BaseModel):
    """
    Copy of the catalog data needed to render and price a cart line.

    Catalog sources disagree on field names, so every field accepts the
    spellings seen in the wild. A product may carry both a public ``id`` and a
    storage ``_id``; both refer to the same entity and ``canonical_id`` picks
    the one a cart line is keyed on.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Public product identifier")
    storage_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("storage_id", "_id"),
        description="Storage-level product identifier"
    )
    name: str = Field(
        "Product",
        validation_alias=AliasChoices("name", "productName"),
        description="Display name"
    )
    price: Optional[float] = Field(None, ge=0, description="Base price")
    mrp: Optional[float] = Field(None, ge=0, description="Reference (maximum retail) price")
    disc_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("disc_price", "discPrice"),
        description="Direct discounted price"
    )
    compare_at_price: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("compare_at_price", "compareAtPrice"),
        description="Legacy compare-at price"
    )
    variations: List[Variant] = Field(
        default_factory=list,
        validation_alias=AliasChoices("variations", "variants"),
        description="Ordered variant records"
    )
    pack: str = Field("1 unit", description="Pack or unit label")
    category_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("category_id", "categoryId", "category"),
        description="Category reference"
    )
    image_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("image_url", "imageUrl", "mainImage"),
        description="Primary image URL"
    )
    is_available: bool = Field(
        True,
        validation_alias=AliasChoices("is_available", "isAvailable"),
        description="Whether the product can currently be bought"
    )

    @field_validator("id", "storage_id", "category_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, dict):
            # Populated references arrive as nested documents
            v = v.get("_id") or v.get("id")
        return str(v) if v is not None else None

    @field_validator("name", "pack", mode="before")
    @classmethod
    def default_blank_labels(cls, v, info):
        if v is None or v == "":
            return "Product" if info.field_name == "name" else "1 unit"
        return v

    @field_validator("variations", mode="before")
    @classmethod
    def default_variations(cls, v):
        return v or []

    @property
    def canonical_id(self) -> Optional[str]:
        return self.storage_id or self.id

    def has_id(self, product_id: str) -> bool:
        """Whether ``product_id`` is either of this product's identifiers."""
        if not product_id:
            return False
        return product_id in (self.id, self.storage_id)
