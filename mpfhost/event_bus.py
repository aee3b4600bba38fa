"""Publish/subscribe messaging with wildcard topic patterns."""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

_log = logging.getLogger(__name__)

EventCallback = Callable[[str, dict[str, Any], str], None]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a topic pattern into a regular expression.

    ``**`` matches one or more levels, ``*`` matches exactly one level.
    The whole topic must match.
    """
    regex = re.escape(pattern)
    regex = regex.replace(r"\*\*", "\0")
    regex = regex.replace(r"\*", "[^/]+")
    regex = regex.replace("\0", ".+")
    return re.compile(regex)


@dataclass(frozen=True)
class SubscriptionOptions:
    """How a subscription receives events."""

    priority: int = 0
    receive_own_events: bool = False


@dataclass(frozen=True)
class Event:
    """A published event."""

    topic: str
    data: dict[str, Any] = field(default_factory=dict)
    sender_id: str = ""
    timestamp: int = 0


@dataclass
class TopicStats:
    """Subscriber and delivery statistics for one topic."""

    topic: str
    subscriber_count: int = 0
    event_count: int = 0
    last_event_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "subscriberCount": self.subscriber_count,
            "eventCount": self.event_count,
            "lastEventTime": self.last_event_time,
        }


@dataclass
class _Subscription:
    id: str
    pattern: str
    subscriber_id: str
    options: SubscriptionOptions
    regex: re.Pattern[str]


@dataclass
class _TopicData:
    event_count: int = 0
    last_event_time: int = 0


class EventBusService:
    """Thread-safe event bus.

    Synchronous publishing notifies listeners immediately; asynchronous
    publishing queues the notification until :meth:`process_events`.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscriptions: dict[str, _Subscription] = {}
        self._subscriber_index: dict[str, list[str]] = {}
        self._topic_data: dict[str, _TopicData] = {}
        self._pending: deque[Event] = deque()
        self._listeners: list[EventCallback] = []

    @property
    def total_subscribers(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(
        self, topic: str, data: Mapping[str, Any] | None = None, sender_id: str = ""
    ) -> int:
        """Queue an event; return the number of subscribers it reaches."""
        return self._deliver(self._make_event(topic, data, sender_id), synchronous=False)

    def publish_sync(
        self, topic: str, data: Mapping[str, Any] | None = None, sender_id: str = ""
    ) -> int:
        """Deliver an event now; return the number of subscribers it reaches."""
        return self._deliver(self._make_event(topic, data, sender_id), synchronous=True)

    def process_events(self) -> int:
        """Deliver queued events; return how many were delivered."""
        with self._lock:
            events = list(self._pending)
            self._pending.clear()
        for event in events:
            self._emit(event)
        return len(events)

    def subscribe(
        self,
        pattern: str,
        subscriber_id: str,
        options: SubscriptionOptions | None = None,
    ) -> str:
        """Subscribe to topics matching ``pattern``; return the subscription id."""
        sub = _Subscription(
            id=str(uuid.uuid4()),
            pattern=pattern,
            subscriber_id=subscriber_id,
            options=options if options is not None else SubscriptionOptions(),
            regex=compile_pattern(pattern),
        )
        with self._lock:
            self._subscriptions[sub.id] = sub
            self._subscriber_index.setdefault(subscriber_id, []).append(sub.id)
        _log.debug("Subscribed %s to %s id: %s", subscriber_id, pattern, sub.id)
        return sub.id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; return False if it does not exist."""
        with self._lock:
            sub = self._subscriptions.pop(subscription_id, None)
            if sub is None:
                return False
            ids = self._subscriber_index.get(sub.subscriber_id, [])
            ids[:] = [i for i in ids if i != subscription_id]
            if not ids:
                self._subscriber_index.pop(sub.subscriber_id, None)
        _log.debug("Unsubscribed %s", subscription_id)
        return True

    def unsubscribe_all(self, subscriber_id: str) -> None:
        with self._lock:
            ids = self._subscriber_index.pop(subscriber_id, [])
            for sub_id in ids:
                self._subscriptions.pop(sub_id, None)
        if ids:
            _log.debug("Unsubscribed all for %s (%d subscriptions)", subscriber_id, len(ids))

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return sum(1 for sub in self._subscriptions.values() if sub.regex.fullmatch(topic))

    def active_topics(self) -> list[str]:
        """Return the distinct subscribed patterns."""
        with self._lock:
            return list(dict.fromkeys(sub.pattern for sub in self._subscriptions.values()))

    def topic_stats(self, topic: str) -> TopicStats:
        with self._lock:
            stats = TopicStats(topic=topic, subscriber_count=self.subscriber_count(topic))
            data = self._topic_data.get(topic)
            if data is not None:
                stats.event_count = data.event_count
                stats.last_event_time = data.last_event_time
        return stats

    def topic_stats_as_dict(self, topic: str) -> dict[str, Any]:
        return self.topic_stats(topic).to_dict()

    def subscriptions_for(self, subscriber_id: str) -> list[str]:
        with self._lock:
            return list(self._subscriber_index.get(subscriber_id, []))

    def matches_topic(self, topic: str, pattern: str) -> bool:
        return compile_pattern(pattern).fullmatch(topic) is not None

    def on_event_published(self, callback: EventCallback) -> EventCallback:
        """Call ``callback(topic, data, sender_id)`` for each delivered event."""
        self._listeners.append(callback)
        return callback

    @staticmethod
    def _make_event(topic: str, data: Mapping[str, Any] | None, sender_id: str) -> Event:
        return Event(
            topic=topic,
            data=dict(data or {}),
            sender_id=sender_id,
            timestamp=int(time.time() * 1000),
        )

    def _deliver(self, event: Event, synchronous: bool) -> int:
        with self._lock:
            stats = self._topic_data.setdefault(event.topic, _TopicData())
            stats.event_count += 1
            stats.last_event_time = event.timestamp
            matches = [
                sub for sub in self._subscriptions.values() if sub.regex.fullmatch(event.topic)
            ]
        if not matches:
            return 0

        notified = sum(
            1
            for sub in matches
            if sub.options.receive_own_events or sub.subscriber_id != event.sender_id
        )

        if synchronous:
            self._emit(event)
        else:
            with self._lock:
                self._pending.append(event)
        return notified

    def _emit(self, event: Event) -> None:
        for callback in list(self._listeners):
            callback(event.topic, dict(event.data), event.sender_id)