"""In-process change feed: table-level publish/subscribe plus a bounded event log for polling."""
import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

REVALIDATE_TOPIC = "revalidate"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
REVALIDATE = "REVALIDATE"


@dataclass(frozen=True)
class ChangeEvent:
    seq: int
    topic: str
    event_type: str
    record: Dict[str, Any] = field(default_factory=dict)
    occurred_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "topic": self.topic,
            "event_type": self.event_type,
            "record": self.record,
            "occurred_at": self.occurred_at,
        }


Callback = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, bus: "ChangeBus", topic: str, callback: Callback, row_filter: Optional[Dict[str, Any]]):
        self.bus = bus
        self.topic = topic
        self.callback = callback
        self.row_filter = row_filter or {}
        self.active = True

    def wants(self, event: ChangeEvent) -> bool:
        return all(event.record.get(k) == v for k, v in self.row_filter.items())

    def unsubscribe(self) -> None:
        self.bus._remove(self)


class ChangeBus:
    def __init__(self, log_size: int = 500):
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._log: Deque[ChangeEvent] = deque(maxlen=log_size)
        self._seq = itertools.count(1)
        self._latest = 0

    @property
    def latest_seq(self) -> int:
        return self._latest

    def subscribe(self, topic: str, callback: Callback, row_filter: Optional[Dict[str, Any]] = None) -> Subscription:
        subscription = Subscription(self, topic, callback, row_filter)
        with self._lock:
            self._subscriptions.setdefault(topic, []).append(subscription)
        logger.debug(f"Subscribed to {topic} (filter={subscription.row_filter})")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.topic, [])
            if subscription in subs:
                subs.remove(subscription)
            subscription.active = False

    def publish(self, topic: str, event_type: str, record: Optional[Dict[str, Any]] = None) -> ChangeEvent:
        with self._lock:
            seq = next(self._seq)
            event = ChangeEvent(
                seq=seq,
                topic=topic,
                event_type=event_type,
                record=dict(record or {}),
                occurred_at=datetime.now(timezone.utc).isoformat(),
            )
            self._log.append(event)
            self._latest = seq
            targets = [s for s in self._subscriptions.get(topic, []) if s.wants(event)]

        # Callbacks run outside the lock so they may publish or unsubscribe
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(f"Subscriber for {topic} failed on event {seq}")
        return event

    def revalidate(self, path: str) -> ChangeEvent:
        """Tell page views that anything rendered for `path` is stale"""
        return self.publish(REVALIDATE_TOPIC, REVALIDATE, {"path": path})

    def events_since(self, seq: int, topic: Optional[str] = None) -> List[ChangeEvent]:
        with self._lock:
            return [e for e in self._log if e.seq > seq and (topic is None or e.topic == topic)]
