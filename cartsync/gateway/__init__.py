"""Remote cart gateway: contract and HTTP implementation."""
from .base import RemoteCartGateway
from .http import HttpCartGateway
from .mapping import map_snapshot

__all__ = [
    "RemoteCartGateway",
    "HttpCartGateway",
    "map_snapshot"
]
