"""Optimistic cart state kept consistent with the remote cart."""
import json
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union
from pydantic import ValidationError
from cartsync.cart.errors import CartOperationError, GatewayError
from cartsync.cart.identity import (
    GUEST,
    CartIdentity,
    normalize_product,
    price_selector,
    requested_variant,
    variant_identity,
)
from cartsync.config import settings
from cartsync.gateway.base import RemoteCartGateway
from cartsync.schemas.cart import CartAggregate, CartLine, CartSnapshot, FeeFields, GeoPoint
from cartsync.schemas.product import ProductSnapshot
from cartsync.utils.events import AddEventChannel, OriginHint
from cartsync.utils.pending import PendingOperations, operation_key
from cartsync.utils.price import VariantSelector, calculate_price

logger = logging.getLogger(__name__)

ChangeListener = Callable[[CartAggregate], None]


def _shares_id(a: ProductSnapshot, b: ProductSnapshot) -> bool:
    """Whether two snapshots name the same product through either identifier."""
    return any(b.has_id(pid) for pid in (a.id, a.storage_id) if pid)


class CartStore:
    """
    Single owner of the local cart and its persisted copy.

    Every mutation is applied locally first and persisted, then confirmed
    against the remote gateway when the current identity is cart-eligible.
    A successful round trip replaces the whole line list with the server's;
    a failed one restores the exact pre-mutation line list and raises
    ``CartOperationError``. Mutations on the same logical line are
    serialized by dropping repeats while one is in flight.
    """

    def __init__(
        self,
        gateway: RemoteCartGateway,
        storage,
        identity: CartIdentity = GUEST,
        location: Optional[GeoPoint] = None,
        events: Optional[AddEventChannel] = None,
        storage_key: Optional[str] = None
    ):
        """
        Initialize the store and hydrate it from local storage.

        Args:
            gateway: Authoritative remote cart
            storage: Durable key-value store with get_item/set_item
            identity: Current session identity (guest by default)
            location: Optional geo hint forwarded to the gateway
            events: Channel for transient add events
            storage_key: Key the line list is persisted under
        """
        self.gateway = gateway
        self.storage = storage
        self.identity = identity
        self.location = location
        self.events = events or AddEventChannel(clear_delay=settings.add_event_clear_delay)
        self.storage_key = storage_key or settings.cart_storage_key
        self._pending = PendingOperations()
        self._items: Tuple[CartLine, ...] = ()
        self._fees = FeeFields()
        self._loading = True
        self._listeners: List[ChangeListener] = []
        self.hydrate()

    # ------------------------------------------------------------------ state

    @property
    def items(self) -> Tuple[CartLine, ...]:
        return self._items

    @property
    def fees(self) -> FeeFields:
        return self._fees

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def pending(self) -> PendingOperations:
        return self._pending

    @property
    def is_server_backed(self) -> bool:
        return any(line.line_id for line in self._items)

    @property
    def cart(self) -> CartAggregate:
        """Aggregate view: lines, item count, subtotal and passthrough fees."""
        subtotal = 0.0
        item_count = 0
        for line in self._items:
            price = calculate_price(line.product, price_selector(line.variant))
            subtotal += price.display_price * line.quantity
            item_count += line.quantity
        return CartAggregate(
            items=list(self._items),
            item_count=item_count,
            subtotal=subtotal,
            estimated_delivery_fee=self._fees.estimated_delivery_fee,
            platform_fee=self._fees.platform_fee,
            free_delivery_threshold=self._fees.free_delivery_threshold,
            backend_total=self._fees.backend_total,
            loading=self._loading
        )

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener called with the new aggregate after each change.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        aggregate = self.cart
        for listener in list(self._listeners):
            try:
                listener(aggregate)
            except Exception:
                logger.exception("[CART] Change listener failed")

    def _persist(self) -> None:
        payload = json.dumps([line.model_dump(mode="json") for line in self._items])
        try:
            self.storage.set_item(self.storage_key, payload)
        except Exception:
            # In-memory state stays authoritative.
            logger.exception("[CART] Failed to persist cart")

    def _set_items(self, items: Iterable[CartLine], fees: Optional[FeeFields] = None) -> None:
        self._items = tuple(items)
        if fees is not None:
            self._fees = fees
        self._persist()
        self._notify()

    def _reconcile(self, snapshot: CartSnapshot) -> None:
        logger.debug(f"[CART] Reconciling with {len(snapshot.items)} server lines")
        self._set_items(snapshot.items, snapshot.fees)

    def _rollback(self, previous: Tuple[CartLine, ...]) -> None:
        logger.info("[CART] Rolling back to pre-mutation cart")
        self._set_items(previous)

    # -------------------------------------------------------------- hydration

    def hydrate(self) -> None:
        """
        Load the persisted line list.

        Entries without a product are dropped; unreadable content leaves the
        cart empty. Never raises on malformed data and never calls the gateway.
        """
        raw = self.storage.get_item(self.storage_key)
        if not raw:
            self._items = ()
            return
        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, list):
                raise ValueError("persisted cart is not a list")
            entries = [entry for entry in parsed if isinstance(entry, dict) and entry.get("product")]
            self._items = tuple(CartLine.model_validate(entry) for entry in entries)
        except (ValueError, TypeError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"[CART] Failed to parse saved cart, starting empty: {e}")
            self._items = ()

    # --------------------------------------------------------------- helpers

    def _find_line(self, product_id: str, variant) -> Optional[CartLine]:
        for line in self._items:
            if line.matches(product_id, variant):
                return line
        return None

    def _find_by_product(self, product_id: str) -> Optional[CartLine]:
        for line in self._items:
            if line.product.has_id(product_id):
                return line
        return None

    # ------------------------------------------------------------- mutations

    async def add_item(
        self,
        product: Union[ProductSnapshot, Mapping[str, Any]],
        variant: VariantSelector = None,
        origin: Optional[OriginHint] = None
    ) -> bool:
        """
        Add one unit of a product (and variant) to the cart.

        Args:
            product: Catalog record or snapshot
            variant: Variant index, id or title; None picks the first variant,
                NO_VARIANT picks none
            origin: Where the add was triggered from, for the add event only

        Returns:
            False if an operation for this product was already in flight

        Raises:
            CartOperationError: If the server rejected the add (state rolled back)
        """
        product = normalize_product(product)
        product_id = product.canonical_id

        if not self._pending.try_acquire(product_id):
            logger.debug(f"[CART] Add for {product_id} already in flight, ignoring")
            return False

        try:
            self.events.emit_added(product, origin)

            identity = variant_identity(product, variant)
            previous = self._items
            lines = list(previous)
            for index, line in enumerate(lines):
                if _shares_id(product, line.product) and line.variant.matches(identity):
                    lines[index] = line.model_copy(update={"quantity": line.quantity + 1})
                    break
            else:
                lines.append(CartLine(product=product, quantity=1, variant=identity))
            self._set_items(lines)

            if not self.identity.cart_eligible:
                return True

            try:
                snapshot = await self.gateway.add(
                    product_id,
                    1,
                    identity.discriminator,
                    self.location
                )
            except GatewayError as e:
                logger.warning(f"[CART] Add to cart failed for {product_id}: {e}")
                self._rollback(previous)
                raise CartOperationError.from_gateway("add", e) from e

            if snapshot is not None:
                self._reconcile(snapshot)
            return True
        finally:
            self._pending.release(product_id)

    async def remove_item(
        self,
        product_id: str,
        variant_id: Optional[str] = None,
        variant_title: Optional[str] = None
    ) -> bool:
        """
        Remove a product from the cart.

        Without variant discriminators every line of the product is removed;
        with them only the matching line is.

        Args:
            product_id: Either identifier of the product
            variant_id: Optional variant id
            variant_title: Optional variant title

        Returns:
            False if no line matched or an operation for this product was
            already in flight

        Raises:
            CartOperationError: If the server rejected the removal (state rolled back)
        """
        requested = requested_variant(variant_id, variant_title)
        if requested.is_empty:
            target = self._find_by_product(product_id)
        else:
            target = self._find_line(product_id, requested)
        key = target.product_id if target else product_id

        if not self._pending.try_acquire(key):
            logger.debug(f"[CART] Remove for {key} already in flight, ignoring")
            return False

        try:
            if target is None:
                logger.debug(f"[CART] No line for {product_id} to remove")
                return False

            previous = self._items
            if requested.is_empty:
                remaining = [line for line in previous if not _shares_id(target.product, line.product)]
            else:
                remaining = [line for line in previous if line is not target]
            self._set_items(remaining)

            if not (self.identity.cart_eligible and target.line_id):
                return True

            try:
                snapshot = await self.gateway.remove(target.line_id, self.location)
            except GatewayError as e:
                logger.warning(f"[CART] Remove from cart failed for {key}: {e}")
                self._rollback(previous)
                raise CartOperationError.from_gateway("remove", e) from e

            if snapshot is not None:
                self._reconcile(snapshot)
            return True
        finally:
            self._pending.release(key)

    async def update_quantity(
        self,
        product_id: str,
        quantity: int,
        variant_id: Optional[str] = None,
        variant_title: Optional[str] = None
    ) -> bool:
        """
        Set the quantity of a cart line; zero or less removes it.

        Without variant discriminators the product's line without a variant
        is used, else its first line (the one a selector-less add created).

        Args:
            product_id: Either identifier of the product
            quantity: New quantity
            variant_id: Optional variant id of the line
            variant_title: Optional variant title of the line

        Returns:
            False if no line matched or an operation for this line was
            already in flight

        Raises:
            CartOperationError: If the server rejected the update (state rolled back)
        """
        if quantity <= 0:
            return await self.remove_item(product_id, variant_id, variant_title)

        requested = requested_variant(variant_id, variant_title)
        target = self._find_line(product_id, requested)
        if target is None and requested.is_empty:
            target = self._find_by_product(product_id)
        if target is not None:
            key = operation_key(target.product_id, target.variant.discriminator)
        else:
            key = operation_key(product_id, requested.discriminator)

        if not self._pending.try_acquire(key):
            logger.debug(f"[CART] Update for {key} already in flight, ignoring")
            return False

        try:
            if target is None:
                logger.debug(f"[CART] No line for {product_id} to update")
                return False

            previous = self._items
            self._set_items(
                line.model_copy(update={"quantity": quantity}) if line is target else line
                for line in previous
            )

            if not (self.identity.cart_eligible and target.line_id):
                return True

            try:
                snapshot = await self.gateway.update_quantity(target.line_id, quantity, self.location)
            except GatewayError as e:
                logger.warning(f"[CART] Update quantity failed for {key}: {e}")
                self._rollback(previous)
                raise CartOperationError.from_gateway("update", e) from e

            if snapshot is not None:
                self._reconcile(snapshot)
            return True
        finally:
            self._pending.release(key)

    async def clear_cart(self) -> None:
        """
        Empty the cart immediately, then confirm with the server.

        Fee fields are dropped with the lines. A failed confirmation keeps the
        empty cart and reconciles from the server instead of rolling back.

        Raises:
            CartOperationError: If both the clear and the recovery refresh failed
        """
        self._set_items([], FeeFields())

        if not self.identity.cart_eligible:
            return

        try:
            await self.gateway.clear()
        except GatewayError as e:
            logger.warning(f"[CART] Clear cart failed, refreshing from server: {e}")
            try:
                await self.refresh()
            except CartOperationError as refresh_error:
                raise CartOperationError("clear", cause=refresh_error) from refresh_error

    async def refresh(self, latitude: Optional[float] = None, longitude: Optional[float] = None) -> None:
        """
        Replace local state with the server's cart.

        Guests have no server cart; their local cart is left as is.

        Args:
            latitude: Optional latitude overriding the current location
            longitude: Optional longitude overriding the current location

        Raises:
            CartOperationError: If the fetch failed (local state unchanged)
        """
        if not self.identity.cart_eligible:
            self._loading = False
            self._notify()
            return

        geo = self.location
        if latitude is not None and longitude is not None:
            geo = GeoPoint(latitude=latitude, longitude=longitude)

        try:
            snapshot = await self.gateway.fetch(geo)
        except GatewayError as e:
            logger.warning(f"[CART] Failed to fetch cart: {e}")
            self._loading = False
            self._notify()
            raise CartOperationError.from_gateway("refresh", e) from e

        self._loading = False
        self._reconcile(snapshot)

    # ---------------------------------------------------- session transitions

    async def set_identity(self, identity: CartIdentity) -> None:
        """
        Apply a session change.

        An eligible identity pulls the server cart. Losing eligibility clears
        a server-backed cart locally; a guest cart is kept.
        """
        previous = self.identity
        self.identity = identity

        if identity.cart_eligible:
            await self.refresh()
            return

        if previous.cart_eligible and self.is_server_backed:
            logger.info("[CART] Signed out, dropping server-backed cart")
            self._loading = False
            self._set_items([], FeeFields())
            return

        self._loading = False
        self._notify()

    async def set_location(self, location: Optional[GeoPoint]) -> None:
        """Change the geo hint; eligible carts are re-fetched since fees depend on it."""
        self.location = location
        if self.identity.cart_eligible:
            await self.refresh()

    async def aclose(self) -> None:
        self.events.clear()
        await self.gateway.aclose()

