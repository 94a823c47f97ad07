from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, overload

from .attributes import AttributeValue
from .errors import InvalidFormatError, InvalidTypeError, ItemDefinitionError


class EnumCodec[E: Enum]:
    """Closed-set codec between the members of one enum type and a string attribute.

    Each member is written as ``{"S": label}``. Labels default to the member name and
    must be unique; the mapping is fixed when the codec is built.
    """

    tags = frozenset({"S"})

    def __init__(self, enum_type: type[E], *, rename: Callable[[str], str] | None = None) -> None:
        if not isinstance(enum_type, type) or not issubclass(enum_type, Enum):
            raise ItemDefinitionError(f"attribute enums require an Enum type: {enum_type!r}")

        to_label: dict[E, str] = {}
        from_label: dict[str, E] = {}
        for member in enum_type:
            label = rename(member.name) if rename is not None else member.name
            if not isinstance(label, str) or not label:
                raise ItemDefinitionError(f"{enum_type.__name__}.{member.name}: label must be a non-empty string")
            if label in from_label:
                raise ItemDefinitionError(
                    f"{enum_type.__name__}: duplicate label {label!r} "
                    f"({from_label[label].name}, {member.name})"
                )
            to_label[member] = label
            from_label[label] = member

        if not to_label:
            raise ItemDefinitionError(f"{enum_type.__name__}: enum has no members")

        self.enum_type = enum_type
        self._to_label = to_label
        self._from_label = from_label

    @property
    def labels(self) -> tuple[tuple[str, str], ...]:
        return tuple((member.name, label) for member, label in self._to_label.items())

    def encode(self, value: E) -> AttributeValue:
        try:
            return {"S": self._to_label[value]}
        except (KeyError, TypeError):
            raise InvalidTypeError(f"{self.enum_type.__name__}: not a member: {value!r}") from None

    def decode(self, value: AttributeValue) -> E:
        payload = value.get("S") if isinstance(value, Mapping) else None
        if not isinstance(payload, str):
            raise InvalidTypeError(f"{self.enum_type.__name__}: expected a string attribute")
        try:
            return self._from_label[payload]
        except KeyError:
            raise InvalidFormatError(f"{self.enum_type.__name__}: unknown label {payload!r}") from None


_codecs: dict[type[Enum], EnumCodec[Any]] = {}
_codecs_lock = threading.Lock()


def enum_codec[E: Enum](enum_type: type[E]) -> EnumCodec[E]:
    with _codecs_lock:
        codec = _codecs.get(enum_type)
        if codec is None:
            codec = EnumCodec(enum_type)
            _codecs[enum_type] = codec
        return codec


@overload
def attribute_enum[E: Enum](enum_type: type[E], /) -> type[E]: ...


@overload
def attribute_enum[E: Enum](
    *, rename: Callable[[str], str] | None = None
) -> Callable[[type[E]], type[E]]: ...


def attribute_enum(enum_type: Any = None, /, *, rename: Callable[[str], str] | None = None) -> Any:
    def register(cls: Any) -> Any:
        codec = EnumCodec(cls, rename=rename)
        with _codecs_lock:
            existing = _codecs.get(cls)
            if existing is not None and existing.labels != codec.labels:
                raise ItemDefinitionError(f"{cls.__name__}: enum codec already registered with other labels")
            _codecs[cls] = codec
        return cls

    if enum_type is not None:
        return register(enum_type)
    return register
