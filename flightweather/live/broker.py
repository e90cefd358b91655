"""
In-process topic broker for live forecast updates.

Topics are plain strings. Each forecast subscription gets its own topic,
named by prefixing the subscription id:

    ForecastSubscription/<subscription id>

Outgoing messages pass through tag_message() before delivery, which
stamps a fresh messageId on a copy of the payload. Consumers use the id
as a list key and dedup hint; it is new even when payloads repeat.

Delivery is best effort: a subscriber only sees messages published
while it is attached. Nothing is retained or replayed.
"""

import logging
import queue
import threading
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from flightweather.config import config

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def topic_for(subscription_id: str, prefix: Optional[str] = None) -> str:
    """Topic name for a forecast subscription."""
    return f'{prefix if prefix is not None else config.live.topic_prefix}{subscription_id}'


def tag_message(payload: Message) -> Message:
    """Return a copy of payload carrying a freshly generated messageId."""
    tagged = dict(payload)
    tagged['messageId'] = str(uuid.uuid4())
    return tagged


class TopicSubscription:
    """
    A consumer attached to one or more topics.

    Messages queue up until read. Iterating blocks until the next message
    and stops once the subscription is closed.
    """

    _CLOSED = object()

    def __init__(self, broker: 'TopicBroker', topics: Iterable[str]):
        self._broker = broker
        self._queue: 'queue.Queue[Any]' = queue.Queue()
        self.topics: Set[str] = set(topics)
        self.closed = False

    def deliver(self, topic: str, message: Message) -> None:
        if not self.closed:
            self._queue.put((topic, message))

    def add_topics(self, topics: Iterable[str]) -> None:
        self._broker._attach(self, topics)

    def next_message(self, timeout: Optional[float] = None) -> Optional[Tuple[str, Message]]:
        """
        Wait for the next (topic, message) pair.

        Returns None on timeout or once closed.
        """
        if self.closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is self._CLOSED:
            return None
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._broker._detach(self)
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[Tuple[str, Message]]:
        while True:
            item = self.next_message()
            if item is None:
                return
            yield item

    def __enter__(self) -> 'TopicSubscription':
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class TopicBroker:
    """Thread-safe fan-out of published messages to topic subscribers."""

    def __init__(self):
        self._subscribers: Dict[str, List[TopicSubscription]] = {}
        self._lock = threading.RLock()
        self._published = 0

    def subscribe(self, topics: Iterable[str]) -> TopicSubscription:
        subscription = TopicSubscription(self, ())
        self._attach(subscription, topics)
        return subscription

    def publish(self, topic: str, payload: Message) -> Message:
        """
        Tag payload with a message id and deliver it to the topic.

        Returns the tagged message.
        """
        message = tag_message(payload)
        with self._lock:
            targets = list(self._subscribers.get(topic, ()))
            self._published += 1

        for subscription in targets:
            subscription.deliver(topic, message)

        logger.debug(f'Published {message["messageId"]} to {topic} ({len(targets)} subscribers)')
        return message

    def topics(self) -> List[str]:
        with self._lock:
            return sorted(t for t, subs in self._subscribers.items() if subs)

    def _attach(self, subscription: TopicSubscription, topics: Iterable[str]) -> None:
        with self._lock:
            for topic in topics:
                listeners = self._subscribers.setdefault(topic, [])
                if subscription not in listeners:
                    listeners.append(subscription)
                subscription.topics.add(topic)

    def _detach(self, subscription: TopicSubscription) -> None:
        with self._lock:
            for topic in list(subscription.topics):
                listeners = self._subscribers.get(topic)
                if not listeners:
                    continue
                if subscription in listeners:
                    listeners.remove(subscription)
                if not listeners:
                    del self._subscribers[topic]

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                'topics': len(self._subscribers),
                'subscriptions': sum(len(s) for s in self._subscribers.values()),
                'published': self._published,
            }
