"""Domain events and the process-wide dispatch registry.

Learn: aggregates don't call email senders or queues directly. They record
"something happened" (UserRegisteredEvent, PasswordRecoveryRequestedEvent...)
and the repository that persists them calls
DomainEvents.dispatch_events_for_aggregate(id) once the write succeeded.
Subscribers registered at startup then react.

Dispatch is in push order, one aggregate at a time. There is no queueing,
no retry and no backpressure here: handlers that need durability (email)
enqueue their own work.
"""

import inspect
import weakref
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional, Union

import structlog

if TYPE_CHECKING:
    from tasksync.core.entities import AggregateRoot, UniqueEntityID

logger = structlog.get_logger()

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class DomainEvent(ABC):
    """Something that happened to an aggregate.

    Subclasses set `occurred_at` and name the aggregate they belong to.
    Handlers are registered against the subclass name.
    """

    occurred_at: datetime

    @abstractmethod
    def get_aggregate_id(self) -> "UniqueEntityID": ...

    @classmethod
    def event_name(cls) -> str:
        return cls.__name__


class DomainEvents:
    """Static registry: event name -> handlers, plus aggregates awaiting dispatch."""

    _handlers: dict[str, list[EventHandler]] = {}
    # Weak: an aggregate that is never saved drops out once nothing else holds it.
    _marked_aggregates: "weakref.WeakValueDictionary[UniqueEntityID, AggregateRoot]" = (
        weakref.WeakValueDictionary()
    )
    _allowed_events: Optional[set[str]] = None

    # False = drain events without running handlers (seeding, bulk imports).
    should_run: bool = True

    # ─── Registration ────────────────────────────────────

    @classmethod
    def register(cls, handler: EventHandler, event_name: str) -> None:
        cls._handlers.setdefault(event_name, []).append(handler)

    @classmethod
    def restrict_to_events(cls, event_names: Optional[Iterable[str]]) -> None:
        """Only dispatch the named events. None lifts the restriction."""
        cls._allowed_events = set(event_names) if event_names is not None else None

    @classmethod
    def clear_handlers(cls) -> None:
        cls._handlers = {}
        cls._allowed_events = None

    @classmethod
    def handlers_for(cls, event_name: str) -> list[EventHandler]:
        return list(cls._handlers.get(event_name, []))

    # ─── Marking ─────────────────────────────────────────

    @classmethod
    def mark_aggregate_for_dispatch(cls, aggregate: "AggregateRoot") -> None:
        if aggregate.id not in cls._marked_aggregates:
            cls._marked_aggregates[aggregate.id] = aggregate

    @classmethod
    def clear_marked_aggregates(cls) -> None:
        cls._marked_aggregates = weakref.WeakValueDictionary()

    @classmethod
    def marked_aggregates(cls) -> list["AggregateRoot"]:
        return list(cls._marked_aggregates.values())

    @classmethod
    def _find_marked_aggregate(cls, id: "UniqueEntityID") -> Optional["AggregateRoot"]:
        return cls._marked_aggregates.get(id)

    @classmethod
    def _remove_marked_aggregate(cls, aggregate: "AggregateRoot") -> None:
        cls._marked_aggregates.pop(aggregate.id, None)

    # ─── Dispatch ────────────────────────────────────────

    @classmethod
    async def dispatch_events_for_aggregate(cls, id: "UniqueEntityID") -> None:
        """Run handlers for every pending event of a marked aggregate.

        Unmarked aggregates are ignored and keep their events.
        """
        aggregate = cls._find_marked_aggregate(id)
        if aggregate is None:
            return

        for event in aggregate.domain_events:
            await cls._dispatch(event)

        aggregate.clear_events()
        cls._remove_marked_aggregate(aggregate)

    @classmethod
    async def _dispatch(cls, event: DomainEvent) -> None:
        if not cls.should_run:
            return

        name = event.event_name()
        if cls._allowed_events is not None and name not in cls._allowed_events:
            return

        for handler in cls.handlers_for(name):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "domain_events.handler_failed",
                    event_name=name,
                    aggregate_id=str(event.get_aggregate_id()),
                )
