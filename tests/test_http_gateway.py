"""
Tests for the HTTP cart gateway.

The cart API is replaced with an ``httpx.MockTransport`` so that request
shape, envelope handling and payload mapping can be checked without a server.
"""
import json

import httpx
import pytest

from cartsync.cart import GatewayError
from cartsync.gateway.http import HttpCartGateway
from cartsync.gateway.mapping import map_snapshot
from cartsync.schemas.cart import GeoPoint


BASE_URL = "http://cart.test/api/v1"

SERVER_CART = {
    "_id": "cart-1",
    "items": [
        {
            "_id": "line-1",
            "product": {
                "_id": "64f0rice",
                "productName": "Basmati Rice",
                "price": 120,
                "mrp": 150,
                "mainImage": "https://cdn.test/rice.png",
                "pack": "1 kg",
                "category": {"_id": "cat-grains", "name": "Grains"},
                "variations": [
                    {"_id": "rice-1kg", "title": "1 kg", "price": 120, "discPrice": 100},
                    {"_id": "rice-5kg", "title": "5 kg", "price": 550}
                ]
            },
            "quantity": 2,
            "variation": "rice-5kg"
        },
        {"_id": "line-2", "product": None, "quantity": 1},
        {
            "_id": "line-3",
            "product": {"_id": "64f0apple", "name": "Apple", "price": 30},
            "quantity": 1
        }
    ],
    "total": 1130,
    "estimatedDeliveryFee": 25,
    "platformFee": 5,
    "freeDeliveryThreshold": 199
}


class RecordingHandler:
    """Mock transport handler that records requests and replays a response."""

    def __init__(self, status_code=200, body=None, exc=None):
        self.status_code = status_code
        self.body = body if body is not None else {"success": True, "data": SERVER_CART}
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.body)


def make_gateway(handler: RecordingHandler, token: str = "secret") -> HttpCartGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpCartGateway(base_url=BASE_URL, token=token, timeout=5, client=client)


class TestSnapshotMapping:
    """Server payloads map onto cart lines and passthrough fees."""

    def test_lines_and_fees(self):
        snapshot = map_snapshot(SERVER_CART)

        assert [line.line_id for line in snapshot.items] == ["line-1", "line-3"]
        rice = snapshot.items[0]
        assert rice.product.name == "Basmati Rice"
        assert rice.product.id == "64f0rice"
        assert rice.product.image_url == "https://cdn.test/rice.png"
        assert rice.product.category_id == "cat-grains"
        assert rice.quantity == 2
        assert rice.variant.id == "rice-5kg"
        assert rice.variant.title == "5 kg"
        assert snapshot.items[1].variant.is_empty
        assert snapshot.fees.estimated_delivery_fee == 25
        assert snapshot.fees.platform_fee == 5
        assert snapshot.fees.free_delivery_threshold == 199
        assert snapshot.fees.backend_total == 1130

    def test_missing_items_is_no_snapshot(self):
        assert map_snapshot({"total": 0}) is None
        assert map_snapshot(None) is None

    def test_unreadable_line_is_dropped(self):
        snapshot = map_snapshot({"items": [{"_id": "line-9", "product": {"_id": "p"}, "quantity": 0}]})

        assert snapshot.items == ()


@pytest.mark.asyncio
class TestHttpCartGateway:
    """Request shape and error handling."""

    async def test_fetch_sends_location_and_token(self):
        handler = RecordingHandler()
        gateway = make_gateway(handler)

        snapshot = await gateway.fetch(GeoPoint(latitude=12.5, longitude=77.25))

        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v1/customer/cart"
        assert request.url.params["latitude"] == "12.5"
        assert request.url.params["longitude"] == "77.25"
        assert request.headers["Authorization"] == "Bearer secret"
        assert len(snapshot.items) == 2

    async def test_fetch_without_location_sends_no_params(self):
        handler = RecordingHandler()
        gateway = make_gateway(handler, token="")

        await gateway.fetch()

        request = handler.requests[0]
        assert "latitude" not in request.url.params
        assert "Authorization" not in request.headers

    async def test_fetch_without_items_is_empty_cart(self):
        handler = RecordingHandler(body={"success": True, "message": "Location required", "data": {"total": 0}})
        gateway = make_gateway(handler)

        snapshot = await gateway.fetch()

        assert snapshot.items == ()
        assert snapshot.fees.platform_fee is None

    async def test_add_payload(self):
        handler = RecordingHandler()
        gateway = make_gateway(handler)

        await gateway.add("64f0rice", 1, "rice-5kg", GeoPoint(latitude=1, longitude=2))

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/v1/customer/cart/add"
        assert json.loads(request.content) == {"productId": "64f0rice", "quantity": 1, "variation": "rice-5kg"}

    async def test_add_without_variation_omits_it(self):
        handler = RecordingHandler()
        gateway = make_gateway(handler)

        await gateway.add("64f0apple")

        assert json.loads(handler.requests[0].content) == {"productId": "64f0apple", "quantity": 1}

    async def test_update_and_remove_address_line(self):
        handler = RecordingHandler()
        gateway = make_gateway(handler)

        await gateway.update_quantity("line-1", 4)
        await gateway.remove("line-1")

        update, remove = handler.requests
        assert (update.method, update.url.path) == ("PUT", "/api/v1/customer/cart/item/line-1")
        assert json.loads(update.content) == {"quantity": 4}
        assert (remove.method, remove.url.path) == ("DELETE", "/api/v1/customer/cart/item/line-1")

    async def test_mutation_without_cart_returns_none(self):
        handler = RecordingHandler(body={"success": True, "message": "Item added to cart", "data": {}})
        gateway = make_gateway(handler)

        assert await gateway.add("64f0apple") is None

    async def test_clear(self):
        handler = RecordingHandler(body={"success": True, "data": {"items": [], "total": 0}})
        gateway = make_gateway(handler)

        await gateway.clear()

        assert (handler.requests[0].method, handler.requests[0].url.path) == ("DELETE", "/api/v1/customer/cart")

    async def test_error_status_carries_server_message(self):
        handler = RecordingHandler(
            status_code=403,
            body={"success": False, "message": "This product is not available in your current location"}
        )
        gateway = make_gateway(handler)

        with pytest.raises(GatewayError) as exc_info:
            await gateway.add("64f0apple")

        assert exc_info.value.status_code == 403
        assert exc_info.value.server_message == "This product is not available in your current location"

    async def test_unsuccessful_envelope_is_error(self):
        handler = RecordingHandler(status_code=200, body={"success": False, "message": "Cart not found"})
        gateway = make_gateway(handler)

        with pytest.raises(GatewayError) as exc_info:
            await gateway.remove("line-1")

        assert exc_info.value.server_message == "Cart not found"

    async def test_transport_error_is_gateway_error(self):
        handler = RecordingHandler(exc=httpx.ConnectError("connection refused"))
        gateway = make_gateway(handler)

        with pytest.raises(GatewayError) as exc_info:
            await gateway.fetch()

        assert exc_info.value.server_message is None
        assert exc_info.value.status_code is None
