"""
Bus d'evenements de location / Rental event bus.

Les ecouteurs (webhooks, temps reel...) sont branches par des collaborateurs
externes. Ils s'executent apres le commit ; une erreur est journalisee et
n'annule jamais la reservation.
Listeners (webhooks, realtime...) are plugged in by external collaborators.
They run after commit; a failure is logged and never rolls back the booking.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

RENTAL_CREATED = "rental.created"
RENTAL_CANCELLED = "rental.cancelled"

Listener = Callable[[str, dict], Awaitable[None] | None]


class RentalEventBus:
    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> None:
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def clear(self) -> None:
        self._listeners.clear()

    async def publish(self, event: str, payload: dict) -> int:
        """Diffuser aux ecouteurs / Fan out to listeners. Returns the number of failures."""
        failures = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                outcome = listener(event, payload)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as exc:
                failures += 1
                logger.error("Listener %r failed for %s: %s", listener, event, exc, exc_info=True)
        return failures


event_bus = RentalEventBus()
