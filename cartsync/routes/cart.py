"""Cart routes used by storefront UI collaborators."""
from typing import Any, Dict, Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from cartsync.cart import CartIdentity, CartOperationError, CartStore
from cartsync.schemas.cart import CartAggregate, GeoPoint
from cartsync.schemas.product import ProductSnapshot
from cartsync.utils.events import OriginHint
from cartsync.utils.price import NO_VARIANT

router = APIRouter(prefix="/cart", tags=["cart"])


def get_cart_store(request: Request) -> CartStore:
    """Dependency returning the store created at application startup."""
    store = getattr(request.app.state, "cart_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cart store is not initialized"
        )
    return store


class OriginRequest(BaseModel):
    """Screen position the add was triggered from."""
    x: float
    y: float


class AddItemRequest(BaseModel):
    """Request model for adding a product to the cart."""
    product: Dict[str, Any] = Field(..., description="Catalog product record")
    variant: Optional[Union[int, str]] = Field(
        default=None,
        description="Variant index, id or title; omit to use the first variant"
    )
    no_variant: bool = Field(default=False, description="Add the product without any variant")
    origin: Optional[OriginRequest] = Field(default=None, description="Origin of the add, for animations")


class UpdateQuantityRequest(BaseModel):
    """Request model for setting a line quantity."""
    quantity: int = Field(..., description="New quantity; zero or less removes the line")
    variant_id: Optional[str] = None
    variant_title: Optional[str] = None


class RefreshRequest(BaseModel):
    """Optional location override for a refresh."""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class IdentityRequest(BaseModel):
    """Session identity pushed by the auth collaborator."""
    authenticated: bool = False
    user_type: Optional[str] = None


class CartResponse(BaseModel):
    """Cart aggregate plus whether the requested mutation was applied."""
    cart: CartAggregate
    applied: bool = True


class AddEventResponse(BaseModel):
    """The transient add event, if one is live."""
    product: Optional[ProductSnapshot] = None
    origin: Optional[OriginRequest] = None


def _operation_failed(error: CartOperationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error.message)


@router.get("", response_model=CartResponse)
async def get_cart(store: CartStore = Depends(get_cart_store)):
    """Get the current cart aggregate."""
    return CartResponse(cart=store.cart)


@router.post("/items", response_model=CartResponse)
async def add_item(request: AddItemRequest, store: CartStore = Depends(get_cart_store)):
    """Add one unit of a product to the cart."""
    variant = NO_VARIANT if request.no_variant else request.variant
    origin = OriginHint(x=request.origin.x, y=request.origin.y) if request.origin else None
    try:
        applied = await store.add_item(request.product, variant, origin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart, applied=applied)


@router.patch("/items/{product_id}", response_model=CartResponse)
async def update_item(
    product_id: str,
    request: UpdateQuantityRequest,
    store: CartStore = Depends(get_cart_store)
):
    """Set the quantity of a cart line."""
    try:
        applied = await store.update_quantity(
            product_id,
            request.quantity,
            variant_id=request.variant_id,
            variant_title=request.variant_title
        )
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart, applied=applied)


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: str,
    variant_id: Optional[str] = None,
    variant_title: Optional[str] = None,
    store: CartStore = Depends(get_cart_store)
):
    """Remove a product (or one of its variants) from the cart."""
    try:
        applied = await store.remove_item(product_id, variant_id=variant_id, variant_title=variant_title)
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart, applied=applied)


@router.delete("", response_model=CartResponse)
async def clear_cart(store: CartStore = Depends(get_cart_store)):
    """Empty the cart."""
    try:
        await store.clear_cart()
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart)


@router.post("/refresh", response_model=CartResponse)
async def refresh_cart(request: Optional[RefreshRequest] = None, store: CartStore = Depends(get_cart_store)):
    """Reload the cart from the server."""
    request = request or RefreshRequest()
    try:
        await store.refresh(request.latitude, request.longitude)
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart)


@router.put("/identity", response_model=CartResponse)
async def set_identity(request: IdentityRequest, store: CartStore = Depends(get_cart_store)):
    """Apply a sign-in or sign-out."""
    try:
        await store.set_identity(CartIdentity(authenticated=request.authenticated, user_type=request.user_type))
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart)


@router.put("/location", response_model=CartResponse)
async def set_location(request: GeoPoint, store: CartStore = Depends(get_cart_store)):
    """Change the delivery location used for fee computation."""
    try:
        await store.set_location(request)
    except CartOperationError as e:
        raise _operation_failed(e)
    return CartResponse(cart=store.cart)


@router.get("/events/last", response_model=AddEventResponse)
async def last_add_event(store: CartStore = Depends(get_cart_store)):
    """The most recent add event, until it is cleared."""
    event = store.events.last_event
    if event is None:
        return AddEventResponse()
    origin = OriginRequest(x=event.origin.x, y=event.origin.y) if event.origin else None
    return AddEventResponse(product=event.product, origin=origin)
