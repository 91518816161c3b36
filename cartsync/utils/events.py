"""Transient "item added" events for fly-to-cart style effects."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from cartsync.schemas.product import ProductSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OriginHint:
    """Screen position an add was triggered from."""
    x: float
    y: float


@dataclass(frozen=True)
class AddEvent:
    """Emitted when a product is added to the cart."""
    product: ProductSnapshot
    origin: Optional[OriginHint] = None


AddListener = Callable[[AddEvent], None]


class AddEventChannel:
    """
    Pub/sub channel for add events with a scheduled auto-clear.

    Listeners registered when an event is emitted receive it once; nothing
    is queued or replayed for later subscribers. ``last_event`` stays set
    until the clear delay elapses so pollers can observe it.
    """

    def __init__(self, clear_delay: float = 0.8):
        self.clear_delay = clear_delay
        self._listeners: List[AddListener] = []
        self._last_event: Optional[AddEvent] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def last_event(self) -> Optional[AddEvent]:
        return self._last_event

    def subscribe(self, listener: AddListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit_added(self, product: ProductSnapshot, origin: Optional[OriginHint] = None) -> AddEvent:
        """Publish an add event and schedule its clearing."""
        event = AddEvent(product=product, origin=origin)
        self._last_event = event
        self._schedule_clear()

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("[CART EVENTS] Add listener failed")
        return event

    def clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
        self._last_event = None

    def _schedule_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to time the clear with; nothing will observe the event later.
            self._clear_handle = None
            return
        self._clear_handle = loop.call_later(self.clear_delay, self.clear)
