import pytest

from hyprlang.categories import (
    Handler,
    SpecialCategory,
    SpecialCategoryDescriptor,
    Variable,
    VariableLine,
)
from hyprlang.values import ConfigError, ConfigValue, HandlerOptions


def _noop(command, value):
    return None


def test_unscoped_handler_matches_its_name_anywhere():
    handler = Handler("doABarrelRoll", _noop)
    assert handler.matches("doABarrelRoll", [])
    assert handler.matches("doABarrelRoll", ["testCategory"])
    assert not handler.matches("doABarrelRol", [])


def test_scoped_handler_needs_exact_categories():
    handler = Handler("testCategory:categoryKeyword", _noop)
    assert handler.matches("categoryKeyword", ["testCategory"])
    assert not handler.matches("categoryKeyword", [])
    assert not handler.matches("categoryKeyword", ["testCategory", "nested1"])
    assert not handler.matches("categoryKeyword", ["other"])


def test_leading_colon_scopes_to_top_level():
    handler = Handler(":testUseKeyword", _noop)
    assert handler.matches("testUseKeyword", [])
    assert not handler.matches("testUseKeyword", ["testCategory"])


def test_flag_handler_matches_prefix_without_colon():
    handler = Handler("flags", _noop, HandlerOptions(allow_flags=True))
    assert handler.matches("flagsabc", [])
    assert handler.matches("flags", ["any"])
    assert not handler.matches("flags:value", [])
    assert not handler.matches("other", [])


def test_handler_keeps_its_function():
    calls = []
    handler = Handler("kw", lambda c, v: calls.append((c, v)))
    handler.func("kw", "x")
    assert calls == [("kw", "x")]


def test_variable_lines_are_independent():
    first = Variable("A", "1")
    second = Variable("B")
    first.lines.append(VariableLine("x = $A", ["cat"]))
    assert len(first.lines) == 1
    assert second.lines == []
    assert second.value == ""
    assert first.lines[0].special_category is None


def test_descriptor_add_default_keeps_first():
    desc = SpecialCategoryDescriptor("special", key="key")
    desc.add_default("key", ConfigValue("a"))
    stored = desc.add_default("key", ConfigValue("b"))
    assert stored.data == "a"
    assert desc.default_values["key"].data == "a"


def test_descriptor_remove_default():
    desc = SpecialCategoryDescriptor("special")
    desc.add_default("value", ConfigValue(3))
    desc.remove_default("value")
    desc.remove_default("missing")
    assert "value" not in desc.default_values


def test_apply_defaults_resets_values():
    desc = SpecialCategoryDescriptor("special", key="key")
    desc.add_default("key", ConfigValue("a"))
    desc.add_default("value", ConfigValue(5))
    cat = SpecialCategory(desc, "special", key="key")
    cat.apply_defaults()
    assert cat.values["value"].value == 5
    cat.values["value"].set(9)
    cat.values["value"].set_by_user = True
    cat.apply_defaults()
    assert cat.values["value"].value == 5
    assert cat.values["value"].set_by_user is False
    assert cat.key_value() == "a"


def test_key_value_missing_raises():
    desc = SpecialCategoryDescriptor("static")
    cat = SpecialCategory(desc, "static", is_static=True)
    with pytest.raises(ConfigError):
        cat.key_value()


def test_apply_defaults_keeps_values_without_default():
    desc = SpecialCategoryDescriptor("special")
    cat = SpecialCategory(desc, "special")
    cat.values["extra"] = ConfigValue(7)
    desc.add_default("value", ConfigValue(1.5))
    cat.apply_defaults()
    assert cat.values["extra"].value == 7
    assert cat.values["value"].value == 1.5