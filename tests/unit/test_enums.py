from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

import pytest

from dynoitem_py import (
    EnumCodec,
    InvalidFieldError,
    InvalidFormatError,
    InvalidTypeError,
    ItemDefinitionError,
    attribute_enum,
    from_attributes,
    hash_key,
    to_attributes,
)
from dynoitem_py.enums import enum_codec


class Letter(Enum):
    A = 1
    B = 2
    C = 3


@attribute_enum(rename=str.lower)
class Status(Enum):
    ACTIVE = "on"
    ARCHIVED = "off"


@dataclass(frozen=True)
class Ticket:
    id: str = hash_key()
    letter: Letter = Letter.A
    status: Status = Status.ACTIVE


def test_enum_codec_round_trips_each_member() -> None:
    codec = EnumCodec(Letter)
    assert codec.encode(Letter.B) == {"S": "B"}
    for member in Letter:
        assert codec.decode(codec.encode(member)) is member


def test_enum_codec_labels_are_ordered_identity_pairs() -> None:
    assert EnumCodec(Letter).labels == (("A", "A"), ("B", "B"), ("C", "C"))


def test_enum_codec_rejects_unknown_label() -> None:
    with pytest.raises(InvalidFormatError, match="unknown label 'Z'"):
        EnumCodec(Letter).decode({"S": "Z"})


@pytest.mark.parametrize("value", [{"N": "1"}, {"NULL": True}, {"S": 1}, "A"])
def test_enum_codec_rejects_non_string_attributes(value: Any) -> None:
    with pytest.raises(InvalidTypeError):
        EnumCodec(Letter).decode(value)


def test_enum_codec_rename_derives_labels() -> None:
    codec = EnumCodec(Letter, rename=lambda name: f"letter-{name.lower()}")
    assert codec.encode(Letter.C) == {"S": "letter-c"}
    assert codec.decode({"S": "letter-c"}) is Letter.C


def test_enum_codec_rejects_duplicate_labels() -> None:
    with pytest.raises(ItemDefinitionError, match="duplicate label"):
        EnumCodec(Letter, rename=lambda name: "same")


def test_enum_codec_rejects_non_enum_and_empty_enum() -> None:
    class Empty(Enum):
        pass

    with pytest.raises(ItemDefinitionError, match="require an Enum type"):
        EnumCodec(cast(Any, int))
    with pytest.raises(ItemDefinitionError, match="no members"):
        EnumCodec(Empty)


def test_enum_codec_is_built_once_per_type() -> None:
    assert enum_codec(Letter) is enum_codec(Letter)


def test_attribute_enum_registers_custom_labels_for_fields() -> None:
    ticket = Ticket(id="t1", letter=Letter.C, status=Status.ARCHIVED)
    attrs = to_attributes(ticket)
    assert attrs["letter"] == {"S": "C"}
    assert attrs["status"] == {"S": "archived"}
    assert from_attributes(Ticket, attrs) == ticket


def test_attribute_enum_rejects_conflicting_registration() -> None:
    with pytest.raises(ItemDefinitionError, match="already registered"):
        attribute_enum(rename=str.upper)(Status)


def test_unknown_enum_label_in_item_is_invalid_field() -> None:
    with pytest.raises(InvalidFieldError) as excinfo:
        from_attributes(Ticket, {"id": {"S": "t1"}, "letter": {"S": "Q"}, "status": {"S": "active"}})
    assert excinfo.value.name == "letter"
    assert isinstance(excinfo.value.cause, InvalidFormatError)
