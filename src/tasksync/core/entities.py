"""Entity base classes.

Learn: an entity is defined by its identity, not its attributes. Two User
objects with different names but the same id are the same user at two
points in time. That is why __eq__ and __hash__ only look at the id.

An aggregate root additionally collects domain events while it is being
mutated. Repositories dispatch them after the write succeeds (see
core.events.DomainEvents).
"""

import uuid
from typing import Generic, Optional, TypeVar

from tasksync.core.events import DomainEvent, DomainEvents

PropsT = TypeVar("PropsT")


class UniqueEntityID:
    """Identity value for entities. Defaults to a random UUID4 string."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str] = None):
        self._value = str(value) if value is not None else str(uuid.uuid4())

    @property
    def value(self) -> str:
        return self._value

    def to_string(self) -> str:
        return self._value

    def equals(self, other: "UniqueEntityID") -> bool:
        return isinstance(other, UniqueEntityID) and other._value == self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UniqueEntityID):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"UniqueEntityID({self._value!r})"


class Entity(Generic[PropsT]):
    """Props container with identity-based equality."""

    def __init__(self, props: PropsT, id: Optional[UniqueEntityID] = None):
        self._id = id or UniqueEntityID()
        self.props = props

    @property
    def id(self) -> UniqueEntityID:
        return self._id

    def equals(self, other: object) -> bool:
        if other is self:
            return True
        if not isinstance(other, Entity):
            return False
        return other.id == self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id.value!r})"


class AggregateRoot(Entity[PropsT]):
    """Entity that records domain events until a repository dispatches them."""

    def __init__(self, props: PropsT, id: Optional[UniqueEntityID] = None):
        super().__init__(props, id)
        self._domain_events: list[DomainEvent] = []

    @property
    def domain_events(self) -> list[DomainEvent]:
        return list(self._domain_events)

    def add_domain_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)
        DomainEvents.mark_aggregate_for_dispatch(self)

    def clear_events(self) -> None:
        self._domain_events.clear()
