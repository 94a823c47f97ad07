from __future__ import annotations

import pytest

import dynoitem_py as dynoitem


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert dynoitem._normalize_repo_version("1.2.3") == "1.2.3"
    assert dynoitem._normalize_repo_version("1.2.3-rc.4") == "1.2.3rc4"

    assert callable(dynoitem.parse_item_schema)
    assert callable(dynoitem.register_item_schema)
    assert callable(dynoitem.item_type_from_schema)


def test_init_rejects_unknown_attributes() -> None:
    with pytest.raises(AttributeError):
        dynoitem.does_not_exist  # noqa: B018


def test_init_all_names_resolve() -> None:
    for name in dynoitem.__all__:
        assert getattr(dynoitem, name) is not None
