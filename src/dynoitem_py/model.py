from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any, Literal, cast, get_type_hints, overload

from .attributes import KEY_TAGS, AttributeCodec, codec_for
from .errors import (
    DuplicateHashKeyError,
    DuplicateRangeKeyError,
    ItemDefinitionError,
    NoNamedFieldsError,
    NotARecordTypeError,
)

_log = logging.getLogger(__name__)

METADATA_KEY = "dynoitem"

type Role = Literal["hash", "range"]

_ROLES = ("hash", "range")


@overload
def item_field(
    *,
    role: Role | None = None,
    codec: AttributeCodec | None = None,
    ignore: bool = False,
) -> Any: ...


@overload
def item_field(
    *,
    role: Role | None = None,
    codec: AttributeCodec | None = None,
    ignore: bool = False,
    default: Any,
) -> Any: ...


@overload
def item_field(
    *,
    role: Role | None = None,
    codec: AttributeCodec | None = None,
    ignore: bool = False,
    default_factory: Any,
) -> Any: ...


def item_field(
    *,
    role: Role | None = None,
    codec: AttributeCodec | None = None,
    ignore: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("item_field: cannot set both default and default_factory")

    opts: dict[str, Any] = {"ignore": ignore}
    if role is not None:
        opts["role"] = role
    if codec is not None:
        opts["codec"] = codec

    return field(default=default, default_factory=default_factory, metadata={METADATA_KEY: opts})


def hash_key(*, codec: AttributeCodec | None = None, **kwargs: Any) -> Any:
    return item_field(role="hash", codec=codec, **kwargs)


def range_key(*, codec: AttributeCodec | None = None, **kwargs: Any) -> Any:
    return item_field(role="range", codec=codec, **kwargs)


@dataclass(frozen=True)
class FieldDefinition:
    name: str
    annotation: Any
    role: Role | None
    codec: AttributeCodec


@dataclass(frozen=True)
class KeyFields:
    hash: FieldDefinition | None
    range: FieldDefinition | None


def _field_with_role(defs: Sequence[FieldDefinition], role: Role) -> FieldDefinition | None:
    matches = [d for d in defs if d.role == role]
    if len(matches) > 1:
        names = [d.name for d in matches]
        if role == "hash":
            raise DuplicateHashKeyError(field_names=names)
        raise DuplicateRangeKeyError(field_names=names)
    return matches[0] if matches else None


def classify(defs: Sequence[FieldDefinition]) -> KeyFields:
    return KeyFields(hash=_field_with_role(defs, "hash"), range=_field_with_role(defs, "range"))


def _check_key_codec(type_name: str, key_field: FieldDefinition) -> None:
    tags = getattr(key_field.codec, "tags", None)
    if tags is not None and not tags <= KEY_TAGS:
        raise ItemDefinitionError(
            f"{type_name}.{key_field.name}: {key_field.role} key must be a string, number or binary "
            f"attribute (got {'/'.join(sorted(tags))})"
        )


@dataclass(frozen=True)
class ItemDefinition[T]:
    model_type: type[T]
    name: str
    qualname: str
    module: str
    fields: tuple[FieldDefinition, ...]
    hash_key: FieldDefinition | None
    range_key: FieldDefinition | None
    source: ItemDefinition[Any] | None = field(default=None, repr=False, compare=False)

    @property
    def key_fields(self) -> tuple[FieldDefinition, ...]:
        if self.hash_key is None:
            return ()
        if self.range_key is None:
            return (self.hash_key,)
        return (self.hash_key, self.range_key)

    @classmethod
    def from_dataclass(
        cls,
        model_type: type[T],
        *,
        source: ItemDefinition[Any] | None = None,
    ) -> ItemDefinition[T]:
        if not isinstance(model_type, type) or not is_dataclass(model_type):
            raise NotARecordTypeError(f"item type must be a dataclass: {model_type!r}")

        type_name = model_type.__name__
        try:
            hints = get_type_hints(model_type)
        except (NameError, TypeError) as err:
            raise ItemDefinitionError(f"{type_name}: cannot resolve field types: {err}") from err

        defs: list[FieldDefinition] = []
        for dc_field in fields(model_type):
            opts = cast(dict[str, Any], dc_field.metadata.get(METADATA_KEY, {}))
            if opts.get("ignore", False):
                if dc_field.init and dc_field.default is MISSING and dc_field.default_factory is MISSING:
                    raise ItemDefinitionError(f"{type_name}.{dc_field.name}: ignored field requires a default")
                continue
            if not dc_field.init:
                raise ItemDefinitionError(f"{type_name}.{dc_field.name}: field must be an __init__ argument")

            role = opts.get("role")
            if role is not None and role not in _ROLES:
                raise ItemDefinitionError(f"{type_name}.{dc_field.name}: unknown key role: {role!r}")

            annotation = hints.get(dc_field.name, Any)
            codec = cast(AttributeCodec | None, opts.get("codec"))
            if codec is None:
                try:
                    codec = codec_for(annotation)
                except ItemDefinitionError as err:
                    raise type(err)(f"{type_name}.{dc_field.name}: {err}") from err

            defs.append(
                FieldDefinition(
                    name=dc_field.name,
                    annotation=annotation,
                    role=cast("Role | None", role),
                    codec=codec,
                )
            )

        if not defs:
            raise NoNamedFieldsError(f"{type_name}: item must define at least one named field")

        keys = classify(defs)
        for key_field in (keys.hash, keys.range):
            if key_field is not None:
                _check_key_codec(type_name, key_field)

        if keys.hash is None and keys.range is not None:
            _log.debug("%s: range key %s ignored without a hash key", type_name, keys.range.name)

        _log.debug(
            "compiled item definition %s (hash=%s, range=%s, fields=%d)",
            type_name,
            keys.hash.name if keys.hash else None,
            keys.range.name if keys.range else None,
            len(defs),
        )
        return cls(
            model_type=model_type,
            name=type_name,
            qualname=model_type.__qualname__,
            module=model_type.__module__,
            fields=tuple(defs),
            hash_key=keys.hash,
            range_key=keys.range,
            source=source,
        )
