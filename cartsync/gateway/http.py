"""HTTP implementation of the remote cart gateway."""
import asyncio
import logging
from typing import Any, Dict, Optional
import httpx
from cartsync.cart.errors import GatewayError
from cartsync.config import settings
from cartsync.gateway.base import RemoteCartGateway
from cartsync.gateway.mapping import map_snapshot
from cartsync.schemas.cart import CartSnapshot, GeoPoint
from cartsync.utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

CART_PATH = "/customer/cart"


def geo_params(geo: Optional[GeoPoint]) -> Dict[str, float]:
    """Query parameters carrying the location hint, if any."""
    if geo is None:
        return {}
    return {"latitude": geo.latitude, "longitude": geo.longitude}


class HttpCartGateway(RemoteCartGateway):
    """
    Cart gateway talking to the customer cart REST API.

    Every response is an envelope ``{"success": bool, "message": str,
    "data": {...}}``. Transport errors, timeouts, non-2xx statuses and
    ``success: false`` envelopes all surface as ``GatewayError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the gateway.

        Args:
            base_url: API root (defaults to settings.cart_api_base_url)
            token: Bearer token (defaults to settings.cart_api_token)
            timeout: Per-call timeout in seconds (defaults to settings.cart_api_timeout)
            client: Optional pre-built client, e.g. with a mock transport
        """
        self.base_url = (base_url or settings.cart_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.cart_api_timeout
        token = token if token is not None else settings.cart_api_token
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, headers=headers)
        if client is not None:
            self._client.headers.update(headers)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await call_with_timeout(
                self._client.request(method, url, params=params or None, json=json),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise GatewayError(str(e.args[0]) if e.args else "Cart request timed out") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Cart request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        server_message = body.get("message") if isinstance(body.get("message"), str) else None
        if response.is_error or body.get("success") is False:
            logger.warning(
                f"[CART GATEWAY] {method} {path} failed with {response.status_code}: {server_message or response.text[:100]}"
            )
            raise GatewayError(
                server_message or f"Cart request failed with status {response.status_code}",
                status_code=response.status_code,
                server_message=server_message
            )
        return body

    async def fetch(self, geo: Optional[GeoPoint] = None) -> CartSnapshot:
        body = await self._request("GET", CART_PATH, params=geo_params(geo))
        return map_snapshot(body.get("data")) or CartSnapshot()

    async def add(
        self,
        product_id: str,
        quantity: int = 1,
        variation: Optional[str] = None,
        geo: Optional[GeoPoint] = None
    ) -> Optional[CartSnapshot]:
        payload: Dict[str, Any] = {"productId": product_id, "quantity": quantity}
        if variation:
            payload["variation"] = variation
        body = await self._request("POST", f"{CART_PATH}/add", params=geo_params(geo), json=payload)
        return map_snapshot(body.get("data"))

    async def update_quantity(
        self,
        line_id: str,
        quantity: int,
        geo: Optional[GeoPoint] = None
    ) -> Optional[CartSnapshot]:
        body = await self._request(
            "PUT",
            f"{CART_PATH}/item/{line_id}",
            params=geo_params(geo),
            json={"quantity": quantity}
        )
        return map_snapshot(body.get("data"))

    async def remove(self, line_id: str, geo: Optional[GeoPoint] = None) -> Optional[CartSnapshot]:
        body = await self._request("DELETE", f"{CART_PATH}/item/{line_id}", params=geo_params(geo))
        return map_snapshot(body.get("data"))

    async def clear(self) -> None:
        await self._request("DELETE", CART_PATH)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
