from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .attributes import AttributeCodec, Attributes, AttributeValue, codec_for
from .enums import EnumCodec, attribute_enum
from .errors import (
    CodecError,
    DuplicateHashKeyError,
    DuplicateKeyRoleError,
    DuplicateRangeKeyError,
    DynoitemPyError,
    InvalidFieldError,
    InvalidFormatError,
    InvalidTypeError,
    ItemDefinitionError,
    MappingError,
    MissingFieldError,
    MissingHashKeyError,
    NoNamedFieldsError,
    NotARecordTypeError,
    UnsupportedTypeError,
)
from .items import (
    extract_key,
    from_attributes,
    item,
    item_definition,
    item_mapper,
    key_definition,
    key_type,
    project_key,
    to_attributes,
)
from .keys import synthesize_key
from .mapping import ItemMapper
from .model import FieldDefinition, ItemDefinition, KeyFields, classify, hash_key, item_field, range_key

if TYPE_CHECKING:
    from .schema import item_type_from_schema, parse_item_schema, register_item_schema


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {"item_type_from_schema", "parse_item_schema", "register_item_schema"}:
        from . import schema

        return getattr(schema, name)
    raise AttributeError(name)


__all__ = [
    "AttributeCodec",
    "AttributeValue",
    "Attributes",
    "classify",
    "codec_for",
    "CodecError",
    "DuplicateHashKeyError",
    "DuplicateKeyRoleError",
    "DuplicateRangeKeyError",
    "DynoitemPyError",
    "EnumCodec",
    "attribute_enum",
    "extract_key",
    "FieldDefinition",
    "from_attributes",
    "hash_key",
    "InvalidFieldError",
    "InvalidFormatError",
    "InvalidTypeError",
    "item",
    "item_definition",
    "item_field",
    "item_mapper",
    "item_type_from_schema",
    "ItemDefinition",
    "ItemDefinitionError",
    "ItemMapper",
    "key_definition",
    "key_type",
    "KeyFields",
    "MappingError",
    "MissingFieldError",
    "MissingHashKeyError",
    "NoNamedFieldsError",
    "NotARecordTypeError",
    "parse_item_schema",
    "project_key",
    "range_key",
    "register_item_schema",
    "synthesize_key",
    "to_attributes",
    "UnsupportedTypeError",
    "__repo_version__",
    "__version__",
]
