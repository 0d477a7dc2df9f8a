"""Entity identity and aggregate event bookkeeping."""

from dataclasses import dataclass

from tasksync.core.entities import AggregateRoot, Entity, UniqueEntityID
from tasksync.core.events import DomainEvents
from tasksync.domain.events import UserRegisteredEvent
from tasksync.domain.users import User


@dataclass
class NoteProps:
    text: str


class Note(Entity[NoteProps]):
    pass


class Board(AggregateRoot[NoteProps]):
    pass


# ═══════════════════════════════════════════════════════════
# UniqueEntityID
# ═══════════════════════════════════════════════════════════


def test_unique_entity_id_defaults_to_random_uuid():
    a, b = UniqueEntityID(), UniqueEntityID()
    assert a != b
    assert len(a.value) == 36


def test_unique_entity_id_equality_is_by_value():
    assert UniqueEntityID("abc") == UniqueEntityID("abc")
    assert hash(UniqueEntityID("abc")) == hash(UniqueEntityID("abc"))
    assert str(UniqueEntityID("abc")) == "abc"
    assert UniqueEntityID("abc").to_string() == "abc"


def test_unique_entity_id_not_equal_to_plain_string():
    assert UniqueEntityID("abc") != "abc"


# ═══════════════════════════════════════════════════════════
# Entity
# ═══════════════════════════════════════════════════════════


def test_entities_with_same_id_are_equal_regardless_of_props():
    id = UniqueEntityID("note-1")
    assert Note(NoteProps("first"), id) == Note(NoteProps("second"), id)


def test_entities_with_different_ids_differ():
    assert Note(NoteProps("same")) != Note(NoteProps("same"))


def test_entity_never_equals_non_entity():
    note = Note(NoteProps("x"), UniqueEntityID("n"))
    assert note != "n"
    assert not note.equals(None)
    assert not note.equals(UniqueEntityID("n"))


def test_entities_usable_as_set_members():
    id = UniqueEntityID()
    assert len({Note(NoteProps("a"), id), Note(NoteProps("b"), id)}) == 1


# ═══════════════════════════════════════════════════════════
# AggregateRoot
# ═══════════════════════════════════════════════════════════


def test_add_domain_event_marks_aggregate_once():
    user = User.create(name="Ada", email="ada@example.com", password_hash="x")
    user.add_domain_event(UserRegisteredEvent(user))

    assert len(user.domain_events) == 2
    marked = DomainEvents.marked_aggregates()
    assert marked.count(user) == 1


def test_domain_events_returns_a_copy():
    user = User.create(name="Ada", email="ada@example.com", password_hash="x")
    user.domain_events.clear()
    assert len(user.domain_events) == 1


def test_clear_events_empties_the_list():
    user = User.create(name="Ada", email="ada@example.com", password_hash="x")
    user.clear_events()
    assert user.domain_events == []


def test_aggregate_without_events_is_not_marked():
    Board(NoteProps("empty"))
    assert DomainEvents.marked_aggregates() == []
