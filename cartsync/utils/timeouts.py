"""Timeout helpers for remote cart calls."""
import asyncio
from typing import Any, Awaitable, Optional
from cartsync.config import settings


async def call_with_timeout(
    awaitable: Awaitable[Any],
    timeout: Optional[float] = None,
    timeout_error_message: str = "The cart service took too long to respond. Please try again."
) -> Any:
    """
    Await a remote call, bounding it by a timeout.

    Args:
        awaitable: The pending call
        timeout: Timeout in seconds (defaults to settings.cart_api_timeout)
        timeout_error_message: Message carried by the raised TimeoutError

    Returns:
        Result of the awaitable

    Raises:
        asyncio.TimeoutError: If the call exceeds the timeout (with error message)
    """
    if timeout is None:
        timeout = settings.cart_api_timeout

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise asyncio.TimeoutError(timeout_error_message) from e
