"""Text-level helpers: line reading, comments, numbers, colours and expressions."""

from __future__ import annotations

import math
import re
import struct
from typing import Iterable, Iterator, Mapping, Optional, Tuple, Union

from .values import ParseError, Vector2D

_WHITESPACE = " \t\n\v\f\r"
_MULTILINE_SPACE = " \t"
_DIGITS = frozenset("0123456789")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_FLT_MIN = 1.1754943508222875e-38
_OPERATORS = ("+", "-", "*", "/")

_HEX_RE = re.compile(r"[ \t\n\v\f\r]*[+-]?(?:0[xX](?=[0-9a-fA-F]))?[0-9a-fA-F]+")
_FLOAT_RE = re.compile(
    r"""
    [+-]?
    (?:
        (?P<hex>0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?[0-9]+)?)
      | (?P<dec>(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)
      | (?P<inf>inf(?:inity)?)
      | (?P<nan>nan(?:\([0-9a-z_]*\))?)
    )
    """,
    re.VERBOSE | re.IGNORECASE,
)


def _f32(value: float) -> float:
    """Round to single precision, overflowing to infinity."""
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _wrap_int64(value: int) -> int:
    return (value - _INT64_MIN) % (1 << 64) + _INT64_MIN


def _round_to_byte(value: float) -> int:
    """Round half away from zero and keep the low byte."""
    if math.isnan(value) or math.isinf(value):
        return 0
    rounded = math.floor(abs(value) + 0.5)
    if value < 0:
        rounded = -rounded
    return rounded & 0xFF


def trim(text: str) -> str:
    """Strip leading and trailing whitespace."""
    return text.strip(_WHITESPACE)


def is_number(text: str, allow_float: bool = False) -> bool:
    """Tell whether ``text`` is a plain decimal number, optionally with one dot."""
    if not text:
        return False
    decimal_seen = False
    for index, char in enumerate(text):
        if index == 0 and char == "-":
            continue
        if char in _DIGITS:
            continue
        if not allow_float or char != "." or index == 0 or decimal_seen:
            return False
        decimal_seen = True
    return text[-1] in _DIGITS


def _physical_lines(stream: Union[str, Iterable[str]]) -> Iterator[str]:
    if isinstance(stream, str):
        parts = stream.split("\n")
        if parts[-1] == "":
            parts.pop()
        yield from parts
        return
    for line in stream:
        yield line[:-1] if line.endswith("\n") else line


def read_logical_lines(stream: Union[str, Iterable[str]]) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, text)`` pairs, joining lines that end in a backslash.

    The line number is that of the first physical line. Raises
    :class:`ParseError` if the input ends while a continuation is pending.
    """
    lines = _physical_lines(stream)
    raw_number = 0
    for line in lines:
        raw_number += 1
        number = raw_number
        while line.endswith("\\"):
            line = line[:-1].rstrip(_MULTILINE_SPACE)
            following = next(lines, None)
            if following is None:
                raise ParseError("Last line ends with backslash")
            raw_number += 1
            line += following
        yield number, line


def _parse_hex(value: str) -> int:
    if _HEX_RE.fullmatch(value):
        number = int(value, 16)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    raise ParseError(f"invalid hex {value}")


def _parse_channels(parts: Iterable[str]) -> list:
    channels = []
    for part in parts:
        try:
            channels.append(config_string_to_int(trim(part)))
        except ParseError:
            channels.append(None)
    return channels


def config_string_to_int(value: str) -> int:
    """Convert config text to an integer: decimal, hex, colours or booleans."""
    if value.startswith("0x"):
        return _parse_hex(value)

    if value.startswith("rgba(") and value.endswith(")"):
        inner = trim(value[5:-1])
        if inner.count(",") == 3:
            parts = inner.split(",")
            channels = _parse_channels(parts[:3])
            try:
                alpha = parse_float(trim(parts[3]))
            except ParseError:
                raise ParseError(f"failed parsing {inner}") from None
            if any(channel is None for channel in channels):
                raise ParseError(f"failed parsing {inner}")
            alpha_byte = _round_to_byte(_f32(alpha * 255.0))
            red, green, blue = channels
            return _wrap_int64(alpha_byte * 0x1000000 + red * 0x10000 + green * 0x100 + blue)
        if len(inner) == 8:
            rgba = _parse_hex(inner)
            # stored as ARGB
            return (rgba >> 8) + 0x1000000 * (rgba & 0xFF)
        raise ParseError("rgba() expects length of 8 characters (4 bytes) or 4 comma separated values")

    if value.startswith("rgb(") and value.endswith(")"):
        inner = trim(value[4:-1])
        if inner.count(",") == 2:
            channels = _parse_channels(inner.split(","))
            if any(channel is None for channel in channels):
                raise ParseError(f"failed parsing {inner}")
            red, green, blue = channels
            return _wrap_int64(0xFF000000 + red * 0x10000 + green * 0x100 + blue)
        if len(inner) == 6:
            return _parse_hex(inner) + 0xFF000000
        raise ParseError("rgb() expects length of 6 characters (3 bytes) or 3 comma separated values")

    if value.startswith(("true", "on", "yes")):
        return 1
    if value.startswith(("false", "off", "no")):
        return 0

    if not value or not is_number(value, False):
        raise ParseError(f'cannot parse "{value}" as an int.')

    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ParseError("stoll threw: stoll")
    return number


def parse_float(value: str) -> float:
    """Parse the leading float of ``value`` at single precision; trailing text is ignored."""
    match = _FLOAT_RE.match(value.lstrip(_WHITESPACE))
    if match is None:
        raise ParseError(f"stof: no conversion could be performed for {value!r}")
    text = match.group(0)
    negative = text.startswith("-")

    if match.group("nan"):
        return -math.nan if negative else math.nan
    if match.group("inf"):
        return -math.inf if negative else math.inf

    if match.group("hex"):
        mantissa = re.split("[pP]", match.group("hex"))[0][2:]
        nonzero = re.search("[1-9a-fA-F]", mantissa) is not None
        try:
            parsed = float.fromhex(text)
        except OverflowError:
            parsed = -math.inf if negative else math.inf
    else:
        mantissa = re.split("[eE]", match.group("dec"))[0]
        nonzero = re.search("[1-9]", mantissa) is not None
        parsed = float(text)

    result = _f32(parsed)
    if math.isinf(result) or (nonzero and abs(result) < _FLT_MIN):
        raise ParseError(f"stof: value {value!r} is out of range")
    return result


def parse_vec2(value: str) -> Vector2D:
    """Parse two floats separated by exactly one space."""
    space = value.find(" ")
    if space < 0:
        raise ParseError("no space")
    lhs, rhs = value[:space], value[space + 1:]
    if " " in lhs or " " in rhs:
        raise ParseError("too many args")
    return Vector2D(parse_float(lhs), parse_float(rhs))


def format_float(value: float) -> str:
    """Format a single-precision float in its shortest round-tripping form."""
    value = _f32(float(value))
    negative = math.copysign(1.0, value) < 0
    if math.isnan(value):
        return "-nan" if negative else "nan"
    sign = "-" if negative else ""
    magnitude = abs(value)
    if math.isinf(magnitude):
        return sign + "inf"
    if magnitude == 0:
        return sign + "0"

    text = f"{magnitude:.8e}"
    for precision in range(9):
        candidate = f"{magnitude:.{precision}e}"
        if _f32(float(candidate)) == magnitude:
            text = candidate
            break

    mantissa, exponent_text = text.split("e")
    digits = mantissa.replace(".", "").rstrip("0") or "0"
    exponent = int(exponent_text)

    scientific = digits[0]
    if len(digits) > 1:
        scientific += "." + digits[1:]
    scientific += f"e{'-' if exponent < 0 else '+'}{abs(exponent):02d}"

    count = len(digits)
    if exponent >= count - 1:
        fixed = digits + "0" * (exponent - count + 1)
    elif exponent >= 0:
        fixed = digits[: exponent + 1] + "." + digits[exponent + 1:]
    else:
        fixed = "0." + "0" * (-exponent - 1) + digits

    return sign + (scientific if len(scientific) < len(fixed) else fixed)


def strip_comment(line: str) -> str:
    """Cut off a ``#`` comment; a doubled ``##`` stands for a literal ``#``."""
    comment_pos = line.find("#")
    last_hash_pos = 0
    while comment_pos != -1:
        if comment_pos < len(line) - 1 and line[comment_pos + 1] == "#":
            last_hash_pos = comment_pos + 2
            line = line[: comment_pos + 1] + line[comment_pos + 2:]
            comment_pos = line.find("#", last_hash_pos)
        else:
            return line[:comment_pos]
    return line


def find_expression(rhs: str) -> Optional[Tuple[int, int]]:
    """Locate the first unescaped ``{{ ... }}``.

    Returns ``(start, stop)`` so that ``rhs[start:stop]`` is the whole
    expression including braces, or ``None`` if there is none.
    """
    start = rhs.find("{{")
    while start > 0:
        before = rhs[:start]
        backslashes = len(before) - len(before.rstrip("\\"))
        if backslashes % 2 == 0:
            break
        start = rhs.find("{{", start + 1)
    if start < 0:
        return None
    end = rhs.find("}}", start + 2)
    if end < 0:
        return None
    return start, end + 2


def _operand(token: str, variables: Mapping[str, str], position: str) -> float:
    if token in variables:
        try:
            return parse_float(variables[token])
        except ParseError:
            raise ParseError(
                f"Failed to parse expression: {position} holds a variable that does not look like a number"
            ) from None
    try:
        return parse_float(token)
    except ParseError:
        raise ParseError(
            f"Failed to parse expression: {position} does not look like a number or the variable doesn't exist"
        ) from None


def evaluate_expression(expression: str, variables: Mapping[str, str]) -> float:
    """Evaluate a single binary ``a op b`` expression; operands may name variables."""
    if not expression:
        raise ParseError("Expression is empty")

    args = expression.split()

    def arg(index: int) -> str:
        return args[index] if index < len(args) else ""

    operator = arg(1)
    if operator not in _OPERATORS:
        raise ParseError("Invalid expression type: supported +, -, *, /")

    left = _operand(arg(0), variables, "value 1")
    right = _operand(arg(2), variables, "value 2")

    if operator == "+":
        result = left + right
    elif operator == "-":
        result = left - right
    elif operator == "*":
        result = left * right
    elif right == 0:
        if left == 0 or math.isnan(left):
            result = math.nan
        else:
            result = math.copysign(math.inf, left) * math.copysign(1.0, right)
    else:
        result = left / right
    return _f32(result)


def unescape_expressions(rhs: str) -> str:
    """Drop backslashes escaping ``{``, ``}`` or another backslash."""
    chars = list(rhs)
    index = 0
    while index < len(chars) - 1:
        if chars[index] == "\\":
            following = chars[index + 1]
            if following == "\\":
                del chars[index]
            elif following in "{}":
                del chars[index]
                continue
        index += 1
    return "".join(chars)