from __future__ import annotations

import math
import types
import uuid
from collections.abc import Mapping, Sequence
from collections.abc import Set as AbstractSet
from dataclasses import is_dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Union, get_args, get_origin

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from .errors import InvalidFormatError, InvalidTypeError, MappingError, UnsupportedTypeError

if TYPE_CHECKING:
    from .mapping import ItemMapper

type AttributeValue = dict[str, Any]
type Attributes = dict[str, AttributeValue]

KEY_TAGS = frozenset({"S", "N", "B"})

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

_NUMBER_TYPES = (int, float, Decimal)
_BINARY_TYPES = (bytes, bytearray)
_SET_TAGS = {"S": "SS", "N": "NS", "B": "BS"}
_LIST_ORIGINS = (list, Sequence)
_MAP_ORIGINS = (dict, Mapping)


class AttributeCodec(Protocol):
    def encode(self, value: Any) -> AttributeValue: ...

    def decode(self, value: AttributeValue) -> Any: ...


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return annotation, False
    args = get_args(annotation)
    non_none = [a for a in args if a is not type(None)]  # noqa: E721
    if len(args) == 2 and len(non_none) == 1:
        return non_none[0], True
    return annotation, False


def _scalar_tag(annotation: Any) -> str | None:
    if annotation is bool:
        return "BOOL"
    if annotation is str or annotation is uuid.UUID:
        return "S"
    if annotation in _NUMBER_TYPES:
        return "N"
    if annotation in _BINARY_TYPES:
        return "B"
    return None


def _tags_for(annotation: Any) -> frozenset[str] | None:
    if annotation is Any:
        return None

    tag = _scalar_tag(annotation)
    if tag is not None:
        return frozenset({tag})

    origin = get_origin(annotation) or annotation
    if origin in {set, frozenset, AbstractSet}:
        (elem_type,) = get_args(annotation) or (Any,)
        if elem_type is Any:
            return frozenset(_SET_TAGS.values())
        elem_tag = _scalar_tag(elem_type)
        if elem_tag not in _SET_TAGS:
            raise UnsupportedTypeError(f"unsupported set element type: {elem_type!r}")
        return frozenset({_SET_TAGS[elem_tag]})
    if origin in {list, tuple, Sequence}:
        for arg in get_args(annotation):
            if arg is not Ellipsis:
                _tags_for(_unwrap_optional(arg)[0])
        return frozenset({"L"})
    if origin in {dict, Mapping}:
        args = get_args(annotation)
        if args:
            _check_map_key(args[0])
            _tags_for(_unwrap_optional(args[1])[0])
        return frozenset({"M"})

    raise UnsupportedTypeError(f"unsupported attribute type: {annotation!r}")


def _check_map_key(annotation: Any) -> None:
    if annotation is not str and annotation is not Any:
        raise UnsupportedTypeError(f"map attribute keys must be strings: {annotation!r}")


def _to_wire(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidFormatError(f"number cannot be stored: {value!r}")
        return Decimal(repr(value))
    if isinstance(value, Decimal) and not value.is_finite():
        raise InvalidFormatError(f"number cannot be stored: {value!r}")
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_to_wire(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, AbstractSet):
        return {_to_wire(v) for v in value}
    return value


def _coerce_value(value: Any, annotation: Any) -> Any:
    if value is None:
        return None
    annotation, _ = _unwrap_optional(annotation)

    if annotation is int and isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise InvalidFormatError(f"expected an integral number, got {value}")
        return int(value)
    if annotation is float and isinstance(value, Decimal):
        return float(value)
    if annotation in _BINARY_TYPES and isinstance(value, Binary):
        return annotation(value.value)
    if annotation is Any and isinstance(value, Binary):
        return value.value
    if annotation is uuid.UUID:
        try:
            return uuid.UUID(value)
        except (TypeError, ValueError) as err:
            raise InvalidFormatError(f"invalid uuid: {value!r}") from err

    origin = get_origin(annotation) or annotation
    args = get_args(annotation)
    if origin in {set, frozenset, AbstractSet} and isinstance(value, set):
        (elem_type,) = args or (Any,)
        items = {_coerce_value(v, elem_type) for v in value}
        return frozenset(items) if origin is frozenset else items
    if origin in {list, Sequence} and isinstance(value, list):
        (elem_type,) = args or (Any,)
        return [_coerce_value(v, elem_type) for v in value]
    if origin is tuple and isinstance(value, list):
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_coerce_value(v, args[0]) for v in value)
        if args and len(args) != len(value):
            raise InvalidFormatError(f"expected {len(args)} list elements, got {len(value)}")
        return tuple(_coerce_value(v, t) for v, t in zip(value, args or (Any,) * len(value)))
    if origin in {dict, Mapping} and isinstance(value, dict):
        value_type = args[1] if len(args) == 2 else Any
        return {k: _coerce_value(v, value_type) for k, v in value.items()}

    return value


def _type_tag(value: Any) -> str:
    if not isinstance(value, Mapping) or len(value) != 1:
        raise InvalidTypeError("attribute value must be a map with exactly one type key")
    (tag,) = value.keys()
    return tag


def _payload(value: Any, tag: str, kind: type[Any]) -> Any:
    found = _type_tag(value)
    if found != tag or not isinstance(value[tag], kind):
        raise InvalidTypeError(f"expected {tag}, got {found}")
    return value[tag]


class ScalarCodec:
    def __init__(self, annotation: Any) -> None:
        self.annotation = annotation
        self.tags = _tags_for(annotation)
        self._is_set = self.tags is not None and self.tags <= frozenset(_SET_TAGS.values())

    def encode(self, value: Any) -> AttributeValue:
        if isinstance(value, AbstractSet) and len(value) == 0:
            return {"NULL": True}
        try:
            return _serializer.serialize(_to_wire(value))
        except TypeError as err:
            raise InvalidTypeError(str(err)) from err
        except ArithmeticError as err:
            # boto3 traps numbers beyond 38 significant digits or outside its exponent range
            raise InvalidFormatError(f"number cannot be stored: {value!r}") from err

    def decode(self, value: AttributeValue) -> Any:
        tag = _type_tag(value)
        if tag == "NULL":
            if self._is_set:
                return frozenset() if get_origin(self.annotation) is frozenset else set()
            if self.tags is None:
                return None
            raise InvalidTypeError(f"expected {'/'.join(sorted(self.tags))}, got NULL")
        if self.tags is not None and tag not in self.tags:
            raise InvalidTypeError(f"expected {'/'.join(sorted(self.tags))}, got {tag}")

        try:
            raw = _deserializer.deserialize(value)
        except TypeError as err:
            raise InvalidTypeError(str(err)) from err
        except (ArithmeticError, ValueError) as err:
            raise InvalidFormatError(f"invalid {tag} value: {value[tag]!r}") from err

        if tag == "S" and not isinstance(raw, str):
            raise InvalidTypeError("string attribute must carry a string payload")
        if tag in {"N", "NS"}:
            nums = raw if isinstance(raw, set) else (raw,)
            if not all(n.is_finite() for n in nums):
                raise InvalidFormatError(f"invalid {tag} value: {value[tag]!r}")
        return _coerce_value(raw, self.annotation)


class OptionalCodec:
    def __init__(self, inner: AttributeCodec) -> None:
        self.inner = inner
        inner_tags = getattr(inner, "tags", None)
        self.tags = inner_tags | {"NULL"} if inner_tags is not None else None

    def encode(self, value: Any) -> AttributeValue:
        if value is None:
            return {"NULL": True}
        return self.inner.encode(value)

    def decode(self, value: AttributeValue) -> Any:
        if _type_tag(value) == "NULL":
            return None
        return self.inner.decode(value)


class NestedItemCodec:
    """Encodes a nested dataclass as a map attribute through its own mapper.

    The mapper is resolved on first use so self-referencing types can be declared.
    """

    tags = frozenset({"M"})

    def __init__(self, model_type: type[Any]) -> None:
        self.model_type = model_type
        self._mapper: ItemMapper[Any] | None = None

    @property
    def mapper(self) -> ItemMapper[Any]:
        if self._mapper is None:
            from .items import item_mapper

            self._mapper = item_mapper(self.model_type)
        return self._mapper

    def encode(self, value: Any) -> AttributeValue:
        try:
            return {"M": self.mapper.to_attributes(value)}
        except MappingError as err:
            raise InvalidFormatError(f"{self.model_type.__name__}: {err}") from err

    def decode(self, value: AttributeValue) -> Any:
        payload = _payload(value, "M", Mapping)
        try:
            return self.mapper.from_attributes(dict(payload))
        except MappingError as err:
            raise InvalidFormatError(f"{self.model_type.__name__}: {err}") from err


class ListCodec:
    """Encodes a typed sequence as an ``L`` attribute, one element codec per entry."""

    tags = frozenset({"L"})

    def __init__(self, element: AttributeCodec, *, container: type[Any] = list) -> None:
        self.element = element
        self.container = container

    def encode(self, value: Any) -> AttributeValue:
        return {"L": [self.element.encode(v) for v in value]}

    def decode(self, value: AttributeValue) -> Any:
        return self.container(self.element.decode(v) for v in _payload(value, "L", list))


class TupleCodec:
    tags = frozenset({"L"})

    def __init__(self, elements: Sequence[AttributeCodec]) -> None:
        self.elements = tuple(elements)

    def _check_length(self, entries: Sequence[Any]) -> None:
        if len(entries) != len(self.elements):
            raise InvalidFormatError(f"expected {len(self.elements)} list elements, got {len(entries)}")

    def encode(self, value: Any) -> AttributeValue:
        self._check_length(value)
        return {"L": [codec.encode(v) for codec, v in zip(self.elements, value)]}

    def decode(self, value: AttributeValue) -> Any:
        entries = _payload(value, "L", list)
        self._check_length(entries)
        return tuple(codec.decode(v) for codec, v in zip(self.elements, entries))


class MapCodec:
    tags = frozenset({"M"})

    def __init__(self, value: AttributeCodec) -> None:
        self.value = value

    def encode(self, value: Any) -> AttributeValue:
        return {"M": {k: self.value.encode(v) for k, v in value.items()}}

    def decode(self, value: AttributeValue) -> Any:
        return {k: self.value.decode(v) for k, v in _payload(value, "M", Mapping).items()}


def codec_for(annotation: Any) -> AttributeCodec:
    inner, optional = _unwrap_optional(annotation)
    is_class = isinstance(inner, type) and not isinstance(inner, types.GenericAlias)
    origin = get_origin(inner)
    args = get_args(inner)

    codec: AttributeCodec
    if is_class and issubclass(inner, Enum):
        from .enums import enum_codec

        codec = enum_codec(inner)
    elif is_class and is_dataclass(inner):
        codec = NestedItemCodec(inner)
    elif origin in _LIST_ORIGINS and args:
        codec = ListCodec(codec_for(args[0]))
    elif origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        codec = ListCodec(codec_for(args[0]), container=tuple)
    elif origin is tuple and args:
        codec = TupleCodec([codec_for(a) for a in args])
    elif origin in _MAP_ORIGINS and len(args) == 2:
        _check_map_key(args[0])
        codec = MapCodec(codec_for(args[1]))
    else:
        codec = ScalarCodec(inner)

    return OptionalCodec(codec) if optional else codec
