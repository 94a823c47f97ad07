from __future__ import annotations

import dataclasses
import pickle
import sys
from dataclasses import dataclass
from enum import Enum

import pytest

from dynoitem_py import (
    InvalidFieldError,
    InvalidFormatError,
    MissingHashKeyError,
    extract_key,
    from_attributes,
    hash_key,
    item,
    item_definition,
    item_field,
    key_definition,
    key_type,
    project_key,
    range_key,
    synthesize_key,
    to_attributes,
)


class Region(Enum):
    EU = "eu"
    US = "us"


@item
@dataclass(frozen=True)
class Person:
    id: str = hash_key()
    name: str = item_field()


@item
@dataclass
class Event:
    stream: str = hash_key()
    seq: int = range_key()
    payload: str = ""


@item
@dataclass(frozen=True)
class Shard:
    region: Region = hash_key()
    weight: float = 1.0


@dataclass
class Note:
    body: str


def test_person_end_to_end() -> None:
    person = Person(id="123", name="Ann")
    assert to_attributes(person) == {"id": {"S": "123"}, "name": {"S": "Ann"}}

    PersonKey = key_type(Person)
    assert PersonKey.__name__ == "PersonKey"
    assert [f.name for f in dataclasses.fields(PersonKey)] == ["id"]

    assert extract_key(person) == {"id": {"S": "123"}}
    assert from_attributes(PersonKey, {"id": {"S": "123"}}) == PersonKey(id="123")


def test_key_type_keeps_hash_then_range_fields() -> None:
    EventKey = key_type(Event)
    assert [(f.name, f.type) for f in dataclasses.fields(EventKey)] == [("stream", str), ("seq", int)]

    event = Event(stream="orders", seq=7, payload="x")
    assert extract_key(event) == {"stream": {"S": "orders"}, "seq": {"N": "7"}}
    assert to_attributes(EventKey(stream="orders", seq=7)) == extract_key(event)


@pytest.mark.parametrize(
    "record",
    [
        Person(id="a", name="A"),
        Event(stream="s", seq=1),
        Event(stream="s", seq=2, payload="p"),
        Shard(region=Region.US, weight=0.5),
    ],
)
def test_extract_key_matches_projected_key_record(record: object) -> None:
    key = extract_key(record)
    assert key == to_attributes(project_key(record))
    assert 1 <= len(key) <= 2


def test_key_type_preserves_roles_and_is_its_own_key() -> None:
    key_def = key_definition(Event)
    assert key_def is not None
    assert key_def.hash_key is not None and key_def.hash_key.name == "stream"
    assert key_def.range_key is not None and key_def.range_key.name == "seq"
    assert key_def.source is item_definition(Event)

    EventKey = key_type(Event)
    assert key_type(EventKey) is EventKey
    assert synthesize_key(key_def) is key_def
    assert item_definition(EventKey) is key_def


def test_key_type_is_stable_per_item_type() -> None:
    assert key_type(Person) is key_type(Person)
    assert project_key(Person(id="1", name="x")) == project_key(Person(id="1", name="y"))


def test_key_type_mirrors_module_qualname_and_frozen_flag() -> None:
    PersonKey = key_type(Person)
    assert PersonKey.__module__ == __name__
    assert PersonKey.__qualname__ == "PersonKey"
    with pytest.raises(dataclasses.FrozenInstanceError):
        PersonKey(id="1").id = "2"  # type: ignore[misc]

    event_key = key_type(Event)(stream="s", seq=1)
    event_key.seq = 2
    assert event_key.seq == 2


def test_key_fields_drop_defaults() -> None:
    @dataclass
    class Defaulted:
        id: str = hash_key(default="generated")
        body: str = ""

    DefaultedKey = key_type(Defaulted)
    assert DefaultedKey.__qualname__.endswith("Defaulted" + "Key")
    with pytest.raises(TypeError):
        DefaultedKey()


def test_key_record_reads_full_item_attributes() -> None:
    person = Person(id="123", name="Ann")
    assert from_attributes(key_type(Person), to_attributes(person)) == project_key(person)


def test_enum_hash_keys_are_string_attributes() -> None:
    assert extract_key(Shard(region=Region.EU)) == {"region": {"S": "EU"}}


def test_non_keyed_items_have_no_key_type() -> None:
    assert key_definition(Note) is None
    assert synthesize_key(item_definition(Note)) is None
    with pytest.raises(MissingHashKeyError):
        key_type(Note)
    with pytest.raises(MissingHashKeyError):
        extract_key(Note(body="x"))
    with pytest.raises(MissingHashKeyError):
        project_key(Note(body="x"))


def test_key_types_are_bound_at_their_qualname_and_pickle() -> None:
    PersonKey = key_type(Person)
    assert getattr(sys.modules[__name__], "PersonKey") is PersonKey

    key = project_key(Person(id="123", name="Ann"))
    assert pickle.loads(pickle.dumps(key)) == key


def test_extract_key_reports_unstorable_key_values_by_field_name() -> None:
    with pytest.raises(InvalidFieldError) as excinfo:
        extract_key(Event(stream="s", seq=10**40 + 1))
    assert excinfo.value.name == "seq"
    assert isinstance(excinfo.value.cause, InvalidFormatError)
