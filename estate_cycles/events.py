"""In-process domain event channel.

Observers subscribe to one event type or to everything. Events raised while a
store transaction is open are held back and delivered only after the
outermost transaction commits; a rollback drops them.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Protocol

from estate_cycles.models.base import Event

logger = logging.getLogger(__name__)

CYCLE_CREATED = "cycle.created"
CYCLE_UPDATED = "cycle.updated"
PROPERTY_STATUS_CHANGED = "property.status_changed"
PROPERTY_OWNERSHIP_TRANSFERRED = "property.ownership_transferred"
TRANSACTION_RECORDED = "transaction.recorded"
DEAL_CREATED = "deal.created"

EVENT_TYPES = (
    CYCLE_CREATED,
    CYCLE_UPDATED,
    PROPERTY_STATUS_CHANGED,
    PROPERTY_OWNERSHIP_TRANSFERRED,
    TRANSACTION_RECORDED,
    DEAL_CREATED,
)

Observer = Callable[[Event], None]


class EventSink(Protocol):
    def send(self, topic: str, record: Any, key: str | None = None) -> None: ...


class CommitScope(Protocol):
    def after_commit(self, callback: Callable[[], None]) -> None: ...


class EventBus:
    """Publish domain events to observers and attached sinks."""

    def __init__(self, store: CommitScope | None = None, topic_prefix: str = "brokerage") -> None:
        """Initialize the bus.

        Parameters
        ----------
        store : CommitScope | None
            Store whose transactions gate delivery. Without one, events are
            delivered immediately.
        topic_prefix : str
            Prefix for sink topics (``brokerage.cycle.created``).
        """
        self.store = store
        self.topic_prefix = topic_prefix
        self._observers: list[tuple[str | None, Observer]] = []
        self._sinks: list[EventSink] = []
        self.published_count = 0

    def subscribe(self, callback: Observer, event_type: str | None = None) -> Callable[[], None]:
        """Register an observer; returns a function that removes it again."""
        if event_type is not None and event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        entry = (event_type, callback)
        self._observers.append(entry)

        def unsubscribe() -> None:
            if entry in self._observers:
                self._observers.remove(entry)

        return unsubscribe

    def add_sink(self, sink: EventSink) -> None:
        """Forward every delivered event to a sink."""
        self._sinks.append(sink)

    def topic_for(self, event_type: str) -> str:
        return f"{self.topic_prefix}.{event_type}"

    def publish(
        self,
        event_type: str,
        subject: str,
        data: dict[str, Any],
        source: str = "cycle-manager",
    ) -> Event:
        """Build an event and deliver it now or after the open transaction commits."""
        event = Event(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            event_type=event_type,
            event_time=datetime.now(),
            source=source,
            subject=subject,
            data=data,
        )
        if self.store is None:
            self._deliver(event)
        else:
            self.store.after_commit(lambda: self._deliver(event))
        return event

    def _deliver(self, event: Event) -> None:
        self.published_count += 1
        logger.debug("Event %s %s subject=%s", event.event_id, event.event_type, event.subject)

        for event_type, callback in list(self._observers):
            if event_type is None or event_type == event.event_type:
                try:
                    callback(event)
                except Exception:
                    logger.exception("Observer %r failed on %s", callback, event.event_type)

        topic = self.topic_for(event.event_type)
        for sink in self._sinks:
            sink.send(topic, event, key=event.data.get("property_id"))
