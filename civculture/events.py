from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: EventBus, topic: str, callback: Callable[[], None]) -> None:
        self.bus = bus
        self.topic = topic
        self.callback = callback
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        self.bus._remove(self)


class EventBus:
    """Topic-based publish/subscribe, e.g. the periodic ``global.tick`` signal."""

    def __init__(self) -> None:
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, topic: str, callback: Callable[[], None]) -> Subscription:
        sub = Subscription(self, topic, callback)
        self._subs.setdefault(topic, []).append(sub)
        logger.debug("Subscribed to %s (%d listeners)", topic, len(self._subs[topic]))
        return sub

    def publish(self, topic: str) -> int:
        """Call every subscriber of *topic*. Returns how many were called."""
        # Snapshot so a callback may unsubscribe during delivery
        subs = list(self._subs.get(topic, ()))
        for sub in subs:
            if sub.active:
                sub.callback()
        return len(subs)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subs.get(topic, ()))

    def _remove(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.topic, [])
        if sub in subs:
            subs.remove(sub)
            logger.debug("Unsubscribed from %s", sub.topic)
