from __future__ import annotations

from collections.abc import Sequence


class DynoitemPyError(Exception):
    pass


class ItemDefinitionError(DynoitemPyError, ValueError):
    pass


class NotARecordTypeError(ItemDefinitionError):
    pass


class NoNamedFieldsError(ItemDefinitionError):
    pass


class UnsupportedTypeError(ItemDefinitionError):
    pass


class MissingHashKeyError(ItemDefinitionError):
    pass


class DuplicateKeyRoleError(ItemDefinitionError):
    def __init__(self, *, role: str, field_names: Sequence[str]) -> None:
        super().__init__(f"can't set more than one {role} key (fields: {', '.join(field_names)})")
        self.role = role
        self.field_names = tuple(field_names)


class DuplicateHashKeyError(DuplicateKeyRoleError):
    def __init__(self, *, field_names: Sequence[str]) -> None:
        super().__init__(role="hash", field_names=field_names)


class DuplicateRangeKeyError(DuplicateKeyRoleError):
    def __init__(self, *, field_names: Sequence[str]) -> None:
        super().__init__(role="range", field_names=field_names)


class CodecError(DynoitemPyError):
    pass


class InvalidTypeError(CodecError):
    pass


class InvalidFormatError(CodecError):
    pass


class MappingError(DynoitemPyError):
    pass


class MissingFieldError(MappingError):
    def __init__(self, name: str) -> None:
        super().__init__(f"missing field: {name}")
        self.name = name


class InvalidFieldError(MappingError):
    def __init__(self, name: str, cause: CodecError) -> None:
        super().__init__(f"invalid field {name}: {cause}")
        self.name = name
        self.cause = cause
