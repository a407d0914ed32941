import io
import math

import pytest

from hyprlang.parsing import (
    config_string_to_int,
    evaluate_expression,
    find_expression,
    format_float,
    is_number,
    parse_float,
    parse_vec2,
    read_logical_lines,
    strip_comment,
    trim,
    unescape_expressions,
)
from hyprlang.values import ConfigValue, ParseError, Vector2D


def test_trim_strips_all_whitespace():
    assert trim("\t  key = value \r\n") == "key = value"
    assert trim("   ") == ""


@pytest.mark.parametrize(
    "text, allow_float, expected",
    [
        ("123", False, True),
        ("-5", False, True),
        ("-", False, False),
        ("1.5", False, False),
        ("1.5", True, True),
        ("1.", True, False),
        (".5", True, False),
        ("1.2.3", True, False),
        ("", False, False),
        ("12a", False, False),
        ("5-", False, False),
    ],
)
def test_is_number(text, allow_float, expected):
    assert is_number(text, allow_float) is expected


def test_read_logical_lines_plain():
    assert list(read_logical_lines("a = 1\nb = 2\n")) == [(1, "a = 1"), (2, "b = 2")]


def test_read_logical_lines_empty():
    assert list(read_logical_lines("")) == []


def test_read_logical_lines_joins_continuations():
    expected = "very        long            command"
    head, tail = expected.split("long")
    text = "x = 1\n" + head + "long   \t\\\n" + tail + "\nz = 3"
    assert list(read_logical_lines(text)) == [(1, "x = 1"), (2, expected), (4, "z = 3")]


def test_read_logical_lines_file_like():
    assert list(read_logical_lines(io.StringIO("a\\\nb\nc\n"))) == [(1, "ab"), (3, "c")]


def test_read_logical_lines_trailing_backslash():
    lines = read_logical_lines("a\nb \\")
    assert next(lines) == (1, "a")
    with pytest.raises(ParseError, match="backslash"):
        next(lines)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0xaabbccdd", 0xAABBCCDD),
        ("rgb(200, 0, 200)", 0xFFC800C8),
        ("rgb(20, 240, 20)", 0xFF14F014),
        ("rgb(ff1337)", 0xFFFF1337),
        ("rgba(ffeeff22)", 0x22FFEEFF),
        ("rgba(255, 255, 255, 1.0)", 0xFFFFFFFF),
        ("rgb(0, 0, 0)", 0xFF000000),
        ("123456", 123456),
        ("-42", -42),
    ],
)
def test_config_string_to_int_values(text, expected):
    assert config_string_to_int(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [("true", 1), ("yes", 1), ("on", 1), ("false", 0), ("off", 0), ("no", 0)],
)
def test_config_string_to_int_booleans(text, expected):
    assert config_string_to_int(text) == expected


def test_config_string_to_int_colour_forms_agree():
    assert config_string_to_int("rgba(20, 240, 20, 1.0)") == config_string_to_int("rgb(20, 240, 20)")
    assert config_string_to_int("rgb(c800c8)") == config_string_to_int("rgb(200, 0, 200)")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "abc",
        "12a",
        "0xZZ",
        "0x",
        "rgb(12345)",
        "rgba(1234567)",
        "rgb(1, x, 3)",
        "rgba(1, 2, 3, x)",
        "99999999999999999999",
        "0x1FFFFFFFFFFFFFFFF",
    ],
)
def test_config_string_to_int_errors(text):
    with pytest.raises(ParseError):
        config_string_to_int(text)


def test_config_string_to_int_error_message():
    with pytest.raises(ParseError, match="cannot parse"):
        config_string_to_int("abc")
    with pytest.raises(ParseError, match="invalid hex"):
        config_string_to_int("0xZZ")


def test_parse_float_single_precision():
    assert parse_float("123.456") == ConfigValue(123.456).value


def test_parse_float_prefix_and_specials():
    assert parse_float("  2.5abc") == 2.5
    assert parse_float("-inf") == -math.inf
    assert math.isnan(parse_float("nan"))
    assert parse_float("0x1p3") == 8.0


@pytest.mark.parametrize("text", ["", "abc", ".", "1e100", "-1e100"])
def test_parse_float_errors(text):
    with pytest.raises(ParseError):
        parse_float(text)


def test_parse_vec2():
    assert parse_vec2("69 420") == Vector2D(69, 420)


@pytest.mark.parametrize(
    "text, message",
    [("69", "no space"), ("1 2 3", "too many args"), ("1  2", "too many args")],
)
def test_parse_vec2_shape_errors(text, message):
    with pytest.raises(ParseError, match=message):
        parse_vec2(text)


def test_parse_vec2_bad_number():
    with pytest.raises(ParseError):
        parse_vec2("a b")


@pytest.mark.parametrize(
    "value, expected",
    [(1335.0, "1335"), (250.0, "250"), (500.0, "500"), (2678.0, "2678"), (0.0, "0"), (100000.0, "1e+05")],
)
def test_format_float_values(value, expected):
    assert format_float(value) == expected


@pytest.mark.parametrize("value", [0.1, 123.456, -3.75, 1e-7, 3.4e38, 1 / 3])
def test_format_float_round_trips(value):
    stored = ConfigValue(value).value
    assert parse_float(format_float(stored)) == stored


def test_format_float_sign():
    assert format_float(-2.5) == "-" + format_float(2.5)


def test_strip_comment_escaped_hash():
    assert strip_comment("Hello World! ## This is not a comment!") == "Hello World! # This is not a comment!"


def test_strip_comment_cuts_comment():
    assert trim(strip_comment("value = 1 # a comment")) == "value = 1"
    assert strip_comment("no comment here") == "no comment here"


def test_strip_comment_several_escapes():
    assert strip_comment("a ## b ## c") == "a # b # c"


def test_find_expression_plain():
    rhs = "a {{1 + 2}} b"
    start, stop = find_expression(rhs)
    assert rhs[start:stop] == "{{1 + 2}}"


def test_find_expression_skips_escaped():
    assert find_expression(r"\{{1 + 2}}") is None
    rhs = r"\{{a}} {{b}}"
    start, stop = find_expression(rhs)
    assert rhs[start:stop] == "{{b}}"


def test_find_expression_escaped_backslash():
    rhs = r"\\{{x}}"
    start, stop = find_expression(rhs)
    assert rhs[start:stop] == "{{x}}"


@pytest.mark.parametrize("rhs", ["{{ open", "plain", ""])
def test_find_expression_none(rhs):
    assert find_expression(rhs) is None


def test_evaluate_expression_numbers():
    assert evaluate_expression("1000 / 2", {}) == 500.0


def test_evaluate_expression_variables():
    assert evaluate_expression("EXPR_VAR * 2", {"EXPR_VAR": "1339"}) == 2678.0
    assert evaluate_expression("x + y", {"x": "1.5", "y": "2"}) == evaluate_expression("1.5 + 2", {})


def test_evaluate_expression_ignores_extra_tokens():
    assert evaluate_expression("1 + 2 + 3", {}) == evaluate_expression("1 + 2", {})


def test_evaluate_expression_division_by_zero():
    assert evaluate_expression("1 / 0", {}) == math.inf
    assert math.isnan(evaluate_expression("0 / 0", {}))


@pytest.mark.parametrize(
    "expression, variables",
    [("", {}), ("1 % 2", {}), ("a + 1", {}), ("1 + b", {}), ("v + 1", {"v": "text"}), ("1", {})],
)
def test_evaluate_expression_errors(expression, variables):
    with pytest.raises(ParseError):
        evaluate_expression(expression, variables)


def test_evaluate_expression_empty_message():
    with pytest.raises(ParseError, match="Expression is empty"):
        evaluate_expression("", {})


def test_unescape_expressions():
    assert unescape_expressions(r"\{\{3 + 8\}\}") == "{{3 + 8}}"
    assert unescape_expressions(r"\\5") == "\\5"


def test_unescape_expressions_leaves_other_text():
    assert unescape_expressions("no escapes") == "no escapes"
    assert unescape_expressions(r"a\n") == r"a\n"
    assert unescape_expressions("abc\\") == "abc\\"