"""Tracking of in-flight cart mutations."""
from typing import Optional, Set


def operation_key(product_id: str, variant_discriminator: Optional[str] = None) -> str:
    """Build the pending-operation key for a product, optionally scoped to a variant."""
    if variant_discriminator:
        return f"{product_id}-{variant_discriminator}"
    return product_id


class PendingOperations:
    """
    Set of keys for mutations whose network round trip has not settled.

    A mutation that fails to acquire its key must return without touching
    state. Acquired keys are released exactly once, whatever the outcome.
    """

    def __init__(self):
        self._keys: Set[str] = set()

    def try_acquire(self, key: str) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def release(self, key: str) -> None:
        self._keys.discard(key)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
