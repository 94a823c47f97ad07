from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

from .attributes import AttributeCodec, Attributes, AttributeValue
from .errors import CodecError, InvalidFieldError, MissingFieldError
from .model import ItemDefinition

_log = logging.getLogger(__name__)


def encode_field(name: str, codec: AttributeCodec, value: Any) -> AttributeValue:
    """Encode one field value, reporting values the attribute format cannot hold by field name."""
    try:
        return codec.encode(value)
    except CodecError as err:
        raise InvalidFieldError(name, err) from err


class ItemMapper[T]:
    """The two inverse conversions between items of one type and attribute maps.

    ``from_attributes`` consumes the map it is given: every declared field is popped
    in declaration order, and keys left over afterwards are ignored.
    """

    def __init__(self, definition: ItemDefinition[T]) -> None:
        self._definition = definition
        self._fields: tuple[tuple[str, AttributeCodec], ...] = tuple(
            (f.name, f.codec) for f in definition.fields
        )

    @property
    def definition(self) -> ItemDefinition[T]:
        return self._definition

    def to_attributes(self, item: T) -> Attributes:
        out: Attributes = {}
        for name, codec in self._fields:
            out[name] = encode_field(name, codec, getattr(item, name))
        return out

    def from_attributes(self, attrs: MutableMapping[str, AttributeValue]) -> T:
        values: dict[str, Any] = {}
        for name, codec in self._fields:
            try:
                raw = attrs.pop(name)
            except KeyError:
                raise MissingFieldError(name) from None
            try:
                values[name] = codec.decode(raw)
            except CodecError as err:
                raise InvalidFieldError(name, err) from err

        if attrs and _log.isEnabledFor(logging.DEBUG):
            _log.debug(
                "%s: ignoring unknown attributes: %s", self._definition.name, ", ".join(sorted(attrs))
            )

        return self._definition.model_type(**values)
