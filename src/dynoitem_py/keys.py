from __future__ import annotations

import logging
import sys
from dataclasses import field, fields, make_dataclass
from typing import Any, cast

from .attributes import Attributes
from .errors import MissingHashKeyError
from .mapping import encode_field
from .model import ItemDefinition

_log = logging.getLogger(__name__)


def synthesize_key(definition: ItemDefinition[Any]) -> ItemDefinition[Any] | None:
    """Build the ``<Name>Key`` item type holding only the hash and range fields.

    Key fields keep their annotations and field metadata, role tags included, so the
    key type classifies to the same hash/range pair. A key type is its own key.
    Returns ``None`` for items without a hash key.
    """
    if definition.hash_key is None:
        return None
    if definition.source is not None:
        return definition

    dc_fields = {f.name: f for f in fields(cast(Any, definition.model_type))}
    key_columns = [
        (kf.name, kf.annotation, field(metadata=dc_fields[kf.name].metadata))
        for kf in definition.key_fields
    ]
    params = getattr(definition.model_type, "__dataclass_params__", None)
    key_type = make_dataclass(
        f"{definition.name}Key",
        key_columns,
        frozen=bool(getattr(params, "frozen", False)),
        module=definition.module,
    )
    key_type.__qualname__ = f"{definition.qualname}Key"
    _bind_at_qualname(key_type)

    _log.debug(
        "synthesized key type %s (%s)",
        key_type.__qualname__,
        ", ".join(kf.name for kf in definition.key_fields),
    )
    return ItemDefinition.from_dataclass(key_type, source=definition)


def _bind_at_qualname(key_type: type[Any]) -> None:
    # pickle resolves classes through __module__ and __qualname__
    *path, name = key_type.__qualname__.split(".")
    owner: Any = sys.modules.get(key_type.__module__)
    for part in path:
        if owner is None or part == "<locals>":
            return
        owner = getattr(owner, part, None)
    if owner is None:
        return
    if hasattr(owner, name):
        _log.debug("not binding key type %s: name already taken in %s", name, key_type.__module__)
        return
    setattr(owner, name, key_type)


def _require_hash_key(definition: ItemDefinition[Any]) -> None:
    if definition.hash_key is None:
        raise MissingHashKeyError(f"{definition.name}: item does not define a hash key")


def extract_key(definition: ItemDefinition[Any], item: Any) -> Attributes:
    _require_hash_key(definition)
    return {
        kf.name: encode_field(kf.name, kf.codec, getattr(item, kf.name)) for kf in definition.key_fields
    }


def project_key(key_definition: ItemDefinition[Any], item: Any) -> Any:
    _require_hash_key(key_definition)
    values = {kf.name: getattr(item, kf.name) for kf in key_definition.key_fields}
    return key_definition.model_type(**values)
