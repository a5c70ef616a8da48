# tests/unit/test_params.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from staterouter.core.errors import ValidationError
from staterouter.core.params import PARAM_TYPES, Param, ParamType


def test_required_param_validation():
    p = Param("id")
    assert not p.is_optional
    assert p.validates(5)
    assert not p.validates(None)


def test_default_value_makes_param_optional():
    p = Param("page", "int", value=1)
    assert p.is_optional
    assert p.value(None) == 1
    assert p.value(3) == 3
    assert p.validates(None)


def test_int_type_rejects_strings_and_bools():
    p = Param("page", "int")
    assert p.validates(2)
    assert not p.validates("2")
    assert not p.validates(True)


def test_unknown_type_name_raises():
    with pytest.raises(ValidationError):
        Param("x", "uuid")


def test_custom_param_type():
    even = ParamType("even", lambda v: v % 2 == 0)
    p = Param("n", even)
    assert p.validates(4)
    assert not p.validates(3)
    assert repr(even) == "ParamType('even')"


def test_from_config_variants():
    existing = Param("a")
    assert Param.from_config("a", existing) is existing

    declared = Param.from_config("b", {"type": "string", "dynamic": True})
    assert declared.type is PARAM_TYPES["string"]
    assert declared.dynamic

    defaulted = Param.from_config("c", "x")
    assert defaulted.is_optional
    assert defaulted.value(None) == "x"


def test_from_config_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        Param.from_config("a", {"squash": True})


def test_values_applies_defaults_and_drops_unknown():
    schema = [Param("page", value=1), Param("q")]
    assert Param.values(schema, {"q": "abc", "other": 9}) == {"page": 1, "q": "abc"}
    assert Param.values(schema, None) == {"page": 1, "q": None}


def test_changed_and_equals():
    a, b = Param("a"), Param("b")
    changed = Param.changed([a, b], {"a": 1, "b": 2}, {"a": 1, "b": 3})
    assert changed == [b]
    assert Param.equals([a], {"a": 1, "b": 2}, {"a": 1, "b": 3})
    assert not Param.equals([a, b], {"a": 1, "b": 2}, {"a": 1, "b": 3})


def test_validates_all():
    schema = [Param("id", "int"), Param("page", "int", value=1)]
    assert Param.validates_all(schema, {"id": 5})
    assert not Param.validates_all(schema, {"page": 2})
    assert not Param.validates_all(schema, {"id": "five"})
