"""Shared pytest fixtures for cart engine tests."""
import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest
from sqlalchemy.orm import sessionmaker

from cartsync.cart import CartIdentity, CartStore, GatewayError
from cartsync.cart.identity import GUEST, variant_identity
from cartsync.data.database import LocalStorage, build_engine, init_db
from cartsync.gateway.base import RemoteCartGateway
from cartsync.schemas.cart import CartLine, CartSnapshot, FeeFields, GeoPoint
from cartsync.schemas.product import ProductSnapshot
from cartsync.utils.events import AddEventChannel
from cartsync.utils.price import NO_VARIANT


CUSTOMER = CartIdentity(authenticated=True, user_type="Customer")


class FakeCartGateway(RemoteCartGateway):
    """
    In-memory stand-in for the cart API.

    Keeps its own server-side lines so reconciliation can be observed, records
    every call, fails the operations named in ``failing`` and, when ``gate``
    is set, blocks each call until the event is set.
    """

    def __init__(self, catalog: Dict[str, ProductSnapshot], fees: Optional[FeeFields] = None):
        self.catalog = catalog
        self.fees = fees or FeeFields()
        self.lines: List[CartLine] = []
        self.calls: List[Tuple] = []
        self.failing: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self._next_id = 1

    async def _enter(self, name: str, *args):
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.failing:
            raise GatewayError(f"{name} failed", status_code=500, server_message=f"Server refused {name}")

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(items=tuple(self.lines), fees=self.fees)

    def seed(self, product_id: str, quantity: int, variation: Optional[str] = None) -> CartLine:
        product = self.catalog[product_id]
        line = CartLine(
            line_id=f"line-{self._next_id}",
            product=product,
            quantity=quantity,
            variant=variant_identity(product, variation or NO_VARIANT)
        )
        self._next_id += 1
        self.lines.append(line)
        return line

    async def fetch(self, geo: Optional[GeoPoint] = None) -> CartSnapshot:
        await self._enter("fetch", geo)
        return self.snapshot()

    async def add(self, product_id, quantity=1, variation=None, geo=None):
        await self._enter("add", product_id, quantity, variation, geo)
        product = self.catalog[product_id]
        wanted = variant_identity(product, variation or NO_VARIANT)
        for index, line in enumerate(self.lines):
            if line.product.has_id(product_id) and line.variant.matches(wanted):
                self.lines[index] = line.model_copy(update={"quantity": line.quantity + quantity})
                return self.snapshot()
        self.seed(product_id, quantity, variation)
        return self.snapshot()

    async def update_quantity(self, line_id, quantity, geo=None):
        await self._enter("update_quantity", line_id, quantity, geo)
        self.lines = [
            line.model_copy(update={"quantity": quantity}) if line.line_id == line_id else line
            for line in self.lines
        ]
        return self.snapshot()

    async def remove(self, line_id, geo=None):
        await self._enter("remove", line_id, geo)
        self.lines = [line for line in self.lines if line.line_id != line_id]
        return self.snapshot()

    async def clear(self) -> None:
        await self._enter("clear")
        self.lines = []

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def local_storage(tmp_path) -> LocalStorage:
    """Local storage backed by a fresh SQLite file."""
    engine = build_engine(f"sqlite:///{tmp_path / 'cart.db'}")
    init_db(bind=engine)
    return LocalStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def apple() -> Dict:
    """Plain product, price 30, with distinct public and storage ids."""
    return {
        "_id": "64f0apple",
        "id": "apple",
        "productName": "Apple",
        "price": 30,
        "pack": "1 kg",
        "category": "fruit"
    }


@pytest.fixture
def rice() -> Dict:
    """Product sold in two pack-size variants."""
    return {
        "_id": "64f0rice",
        "name": "Basmati Rice",
        "price": 120,
        "mrp": 150,
        "variations": [
            {"_id": "rice-1kg", "title": "1 kg", "price": 120, "discPrice": 100},
            {"_id": "rice-5kg", "title": "5 kg", "price": 550}
        ]
    }


@pytest.fixture
def catalog(apple, rice) -> Dict[str, ProductSnapshot]:
    snapshots = {}
    for record in (apple, rice):
        product = ProductSnapshot.model_validate(record)
        if product.id is None:
            product = product.model_copy(update={"id": product.storage_id})
        snapshots[product.storage_id] = product
    return snapshots


@pytest.fixture
def gateway(catalog) -> FakeCartGateway:
    return FakeCartGateway(catalog, fees=FeeFields(estimated_delivery_fee=0, platform_fee=5, free_delivery_threshold=199))


@pytest.fixture
def events() -> AddEventChannel:
    return AddEventChannel(clear_delay=0.05)


@pytest.fixture
def guest_store(gateway, local_storage, events) -> CartStore:
    """Store for an anonymous visitor; never talks to the gateway."""
    return CartStore(gateway=gateway, storage=local_storage, identity=GUEST, events=events)


@pytest.fixture
def customer_store(gateway, local_storage, events) -> CartStore:
    """Store for a signed-in customer with a server-backed cart."""
    return CartStore(gateway=gateway, storage=local_storage, identity=CUSTOMER, events=events)
