"""Observer-style delivery of ingestion progress events.

The bus is owned by whoever drives ingestion and passed by reference to
the poller; UI surfaces subscribe to it instead of listening to ambient
global events.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ragchat.models.documents import ProgressEvent

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ProgressBus.subscribe."""

    bus: "ProgressBus" = field(repr=False)
    listener: ProgressListener
    document_id: str | None = None

    def matches(self, event: ProgressEvent) -> bool:
        return self.document_id is None or self.document_id == event.document_id

    @property
    def active(self) -> bool:
        return self.bus.is_subscribed(self)

    def unsubscribe(self) -> None:
        self.bus.unsubscribe(self)


class ProgressBus:
    """Fan out progress events to subscribed listeners.

    Listeners run synchronously in subscription order. A listener that
    raises is logged and skipped; the remaining listeners still receive the
    event and the publishing poller keeps running.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, listener: ProgressListener, document_id: str | None = None) -> Subscription:
        """Register ``listener`` for one document, or all when document_id is None."""
        subscription = Subscription(bus=self, listener=listener, document_id=document_id)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was not registered."""
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    def is_subscribed(self, subscription: Subscription) -> bool:
        return subscription in self._subscriptions

    def publish(self, event: ProgressEvent) -> int:
        """Deliver ``event`` to matching listeners.

        Returns:
            Number of listeners that received the event without raising
        """
        delivered = 0
        # Copy so listeners may unsubscribe while being notified
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                subscription.listener(event)
            except Exception:
                logger.exception(
                    "Progress listener failed",
                    extra={"structured": {"document_id": event.document_id, "status": event.status.value}},
                )
                continue
            delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self._subscriptions)
