from __future__ import annotations

import threading
from collections.abc import MutableMapping
from typing import Any

from .attributes import Attributes, AttributeValue
from .errors import MissingHashKeyError
from .keys import extract_key as _extract_key
from .keys import project_key as _project_key
from .keys import synthesize_key
from .mapping import ItemMapper
from .model import ItemDefinition

_lock = threading.RLock()
_definitions: dict[type[Any], ItemDefinition[Any]] = {}
_key_definitions: dict[type[Any], ItemDefinition[Any] | None] = {}
_mappers: dict[type[Any], ItemMapper[Any]] = {}


def item_definition[T](model_type: type[T]) -> ItemDefinition[T]:
    with _lock:
        definition = _definitions.get(model_type)
        if definition is None:
            definition = ItemDefinition.from_dataclass(model_type)
            _definitions[model_type] = definition
        return definition


def key_definition(model_type: type[Any]) -> ItemDefinition[Any] | None:
    with _lock:
        if model_type in _key_definitions:
            return _key_definitions[model_type]

        key_def = synthesize_key(item_definition(model_type))
        _key_definitions[model_type] = key_def
        if key_def is not None and key_def.model_type is not model_type:
            _definitions[key_def.model_type] = key_def
            _key_definitions[key_def.model_type] = key_def
        return key_def


def item_mapper[T](model_type: type[T]) -> ItemMapper[T]:
    with _lock:
        mapper = _mappers.get(model_type)
        if mapper is None:
            mapper = ItemMapper(item_definition(model_type))
            _mappers[model_type] = mapper
        return mapper


def item[T](model_type: type[T]) -> type[T]:
    """Class decorator registering a dataclass as an item type.

    The definition and its key type are built immediately, so a malformed item
    (duplicate hash or range keys, unsupported field types) fails at class creation.
    """
    item_definition(model_type)
    key_definition(model_type)
    return model_type


def key_type(model_type: type[Any]) -> type[Any]:
    key_def = key_definition(model_type)
    if key_def is None:
        raise MissingHashKeyError(f"{model_type.__name__}: item does not define a hash key")
    return key_def.model_type


def to_attributes(obj: Any) -> Attributes:
    return item_mapper(type(obj)).to_attributes(obj)


def from_attributes[T](model_type: type[T], attrs: MutableMapping[str, AttributeValue]) -> T:
    return item_mapper(model_type).from_attributes(attrs)


def extract_key(obj: Any) -> Attributes:
    return _extract_key(item_definition(type(obj)), obj)


def project_key(obj: Any) -> Any:
    key_def = key_definition(type(obj))
    if key_def is None:
        raise MissingHashKeyError(f"{type(obj).__name__}: item does not define a hash key")
    return _project_key(key_def, obj)
