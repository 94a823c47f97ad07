from __future__ import annotations

import keyword
from collections.abc import Mapping
from dataclasses import field, make_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, cast

import yaml

from .errors import ItemDefinitionError
from .items import item
from .model import METADATA_KEY

SCHEMA_VERSION = "0.1"

_SCHEMA_TYPES: dict[str, Any] = {
    "S": str,
    "N": Decimal,
    "B": bytes,
    "BOOL": bool,
    "SS": set[str],
    "NS": set[Decimal],
    "BS": set[bytes],
    "L": list[Any],
    "M": dict[str, Any],
}


def parse_item_schema(raw: str) -> dict[str, Any]:
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise ItemDefinitionError("invalid item schema YAML/JSON") from err

    if not isinstance(parsed, dict):
        raise ItemDefinitionError("item schema must be a map/object")

    return _validate_document(parsed)


def _validate_document(parsed: dict[str, Any]) -> dict[str, Any]:
    _assert_json_compatible(parsed, path="schema")

    version = parsed.get("schema_version")
    if version != SCHEMA_VERSION:
        raise ItemDefinitionError(f"unsupported schema_version: {version!r}")

    items = parsed.get("items")
    if not isinstance(items, list) or len(items) == 0:
        raise ItemDefinitionError("item schema must include items[]")

    return parsed


def _assert_json_compatible(value: Any, *, path: str) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        if isinstance(value, float) and not (value == value and value not in (float("inf"), float("-inf"))):
            raise ItemDefinitionError(f"item schema contains non-finite float at {path}")
        return

    if isinstance(value, list):
        for idx, elem in enumerate(value):
            _assert_json_compatible(elem, path=f"{path}[{idx}]")
        return

    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise ItemDefinitionError(f"item schema contains non-string key at {path}: {k!r}")
            _assert_json_compatible(v, path=f"{path}.{k}")
        return

    raise ItemDefinitionError(f"item schema contains non-JSON value at {path}: {type(value).__name__}")


def _field_annotation(item_name: str, raw_field: Mapping[str, Any]) -> Any:
    field_name = cast(str, raw_field["name"])
    type_tag = raw_field.get("type")
    if not isinstance(type_tag, str) or type_tag not in _SCHEMA_TYPES:
        raise ItemDefinitionError(f"{item_name}.{field_name}: unsupported type: {type_tag!r}")

    annotation = _SCHEMA_TYPES[type_tag]
    labels = raw_field.get("enum")
    if labels is not None:
        if type_tag != "S":
            raise ItemDefinitionError(f"{item_name}.{field_name}: enum requires type S (got {type_tag})")
        if not isinstance(labels, list) or not labels or not all(isinstance(v, str) and v for v in labels):
            raise ItemDefinitionError(f"{item_name}.{field_name}: enum must be a list of labels")
        if len(set(labels)) != len(labels):
            raise ItemDefinitionError(f"{item_name}.{field_name}: duplicate enum label")
        enum_name = f"{item_name}{field_name.title().replace('_', '')}"
        try:
            annotation = Enum(enum_name, [(label, label) for label in labels], module=__name__)
        except (TypeError, ValueError) as err:
            raise ItemDefinitionError(f"{item_name}.{field_name}: invalid enum labels: {err}") from err

    if raw_field.get("optional", False):
        annotation = annotation | None
    return annotation


def _is_identifier(value: Any) -> bool:
    return isinstance(value, str) and value.isidentifier() and not keyword.iskeyword(value)


def item_type_from_schema(model: Mapping[str, Any], *, module: str = __name__) -> type[Any]:
    name = model.get("name")
    if not _is_identifier(name):
        raise ItemDefinitionError(f"item schema name must be an identifier: {name!r}")

    fields_raw = model.get("fields")
    if not isinstance(fields_raw, list) or len(fields_raw) == 0:
        raise ItemDefinitionError(f"item {name}: missing fields[]")

    field_entries: list[tuple[str, Any, Any]] = []
    seen: set[str] = set()
    for raw_field in fields_raw:
        if not isinstance(raw_field, dict):
            raise ItemDefinitionError(f"item {name}: field must be a map")
        field_name = raw_field.get("name")
        if not _is_identifier(field_name):
            raise ItemDefinitionError(f"item {name}: field name must be an identifier: {field_name!r}")
        if field_name in seen:
            raise ItemDefinitionError(f"item {name}: duplicate field: {field_name}")
        seen.add(field_name)

        opts: dict[str, Any] = {"ignore": False}
        role = raw_field.get("role")
        if role is not None:
            opts["role"] = role

        annotation = _field_annotation(name, raw_field)
        if raw_field.get("optional", False):
            dc_field = field(default=None, metadata={METADATA_KEY: opts})
        else:
            dc_field = field(metadata={METADATA_KEY: opts})
        field_entries.append((field_name, annotation, dc_field))

    try:
        model_type = make_dataclass(
            name,
            field_entries,
            frozen=bool(model.get("frozen", True)),
            kw_only=True,
            module=module,
        )
    except TypeError as err:
        raise ItemDefinitionError(f"item {name}: {err}") from err
    return item(model_type)


def register_item_schema(raw: str | Mapping[str, Any], *, module: str = __name__) -> dict[str, type[Any]]:
    doc = parse_item_schema(raw) if isinstance(raw, str) else _validate_document(dict(raw))

    out: dict[str, type[Any]] = {}
    for model in cast(list[Any], doc.get("items") or []):
        if not isinstance(model, dict):
            raise ItemDefinitionError("item schema items[] entries must be maps")
        model_type = item_type_from_schema(model, module=module)
        if model_type.__name__ in out:
            raise ItemDefinitionError(f"duplicate item name: {model_type.__name__}")
        out[model_type.__name__] = model_type
    return out
