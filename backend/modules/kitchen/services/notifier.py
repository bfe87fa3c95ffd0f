# backend/modules/kitchen/services/notifier.py

"""
Publish/subscribe boundary between kitchen engine instances.

The engine only depends on the abstract ``Notifier``. ``InMemoryNotifier``
is the single-process implementation used by tests and by boards embedded
in the same process.
"""

import copy
import itertools
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from ..config.kitchen_config import get_kitchen_config

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class Subscription:
    """Token returned by ``subscribe``; pass it back to ``unsubscribe``"""

    token_id: int
    topic: str
    handler: EventHandler


@dataclass(frozen=True)
class PublishedEvent:
    topic: str
    payload: Dict[str, Any]


class Notifier(ABC):
    """
    Contract every transport must honour.

    Events on one topic reach each subscriber in publish order. A handler
    that publishes while being called has its event delivered after the
    current one, never nested inside it.
    """

    @abstractmethod
    def publish(self, topic: str, event: Dict[str, Any]) -> None:
        """Fire-and-forget delivery of ``event`` to subscribers of ``topic``"""

    @abstractmethod
    def subscribe(self, topic: str, handler: EventHandler) -> Subscription:
        pass

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        pass


class InMemoryNotifier(Notifier):
    def __init__(self, history_size: Optional[int] = None):
        if history_size is None:
            history_size = get_kitchen_config().EVENT_HISTORY_SIZE
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._queue: Deque[Tuple[str, Dict[str, Any]]] = deque()
        self._history: Deque[PublishedEvent] = deque(maxlen=history_size)
        self._token_ids = itertools.count(1)
        self._dispatching = False

    def publish(self, topic: str, event: Dict[str, Any]) -> None:
        self._history.append(PublishedEvent(topic=topic, payload=copy.deepcopy(event)))
        self._queue.append((topic, event))

        # Already draining further up the stack; that loop will reach this event
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                queued_topic, queued_event = self._queue.popleft()
                self._deliver(queued_topic, queued_event)
        finally:
            self._dispatching = False

    def _deliver(self, topic: str, event: Dict[str, Any]) -> None:
        subscriptions = list(self._subscribers.get(topic, []))
        if not subscriptions:
            logger.debug(f"No subscribers for {topic}")
            return

        for subscription in subscriptions:
            try:
                subscription.handler(copy.deepcopy(event))
            except Exception as e:
                logger.error(
                    f"Subscriber {subscription.token_id} failed handling {topic}: {e}",
                    exc_info=True,
                )

    def subscribe(self, topic: str, handler: EventHandler) -> Subscription:
        subscription = Subscription(
            token_id=next(self._token_ids), topic=topic, handler=handler
        )
        self._subscribers.setdefault(topic, []).append(subscription)
        logger.debug(f"Subscription {subscription.token_id} registered for {topic}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscribers.get(subscription.topic, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    def get_history(self, topic: Optional[str] = None) -> List[PublishedEvent]:
        """Most recent published events, oldest first"""
        if topic is None:
            return list(self._history)
        return [entry for entry in self._history if entry.topic == topic]

    def clear(self) -> None:
        """Drop the event history; subscriptions are kept"""
        self._history.clear()
