"""Value containers, option records and errors for configuration entries."""

from __future__ import annotations

import enum
import struct
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Optional

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class ConfigError(Exception):
    """Raised when the configuration object is used incorrectly."""


class ParseError(ConfigError):
    """Raised when configuration text cannot be parsed or applied."""


class DataType(enum.Enum):
    """The kind of data a config value holds."""

    EMPTY = 0
    INT = 1
    FLOAT = 2
    STR = 3
    VEC2 = 4
    CUSTOM = 5


def _to_float32(value: float) -> float:
    """Round a Python float to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _check_int(value: int) -> int:
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise OverflowError(f"integer {value} does not fit in 64 bits")
    return value


@dataclass(frozen=True)
class Vector2D:
    """A very simple two-component vector."""

    x: float = 0.0
    y: float = 0.0

    def __str__(self) -> str:
        return f"[{self.x:g}, {self.y:g}]"


def _to_vec2(value: Vector2D) -> Vector2D:
    return Vector2D(_to_float32(float(value.x)), _to_float32(float(value.y)))


@dataclass
class ConfigOptions:
    """Options for the config parser."""

    verify_only: bool = False
    throw_all_errors: bool = False
    allow_missing_config: bool = False
    path_is_stream: bool = False


@dataclass
class HandlerOptions:
    """Options for keyword handlers."""

    allow_flags: bool = False


@dataclass
class SpecialCategoryOptions:
    """Options for special categories.

    ``key`` names the value identifying an instance of the category; ``None``
    makes a static category unless ``anonymous_key_based`` is set.
    """

    key: Optional[str] = None
    ignore_missing: bool = False
    anonymous_key_based: bool = False


CustomHandler = Callable[[str, Any], Any]


class CustomValueType:
    """A config value whose text is interpreted by a user-supplied handler.

    The handler is called as ``handler(value, data)`` and returns the new data;
    it raises :class:`ParseError` to reject the value.
    """

    def __init__(self, handler: CustomHandler, default_value: str) -> None:
        self.handler = handler
        self.default_value = default_value
        self.last_value = default_value
        self.data: Any = None

    def apply(self, value: str) -> None:
        """Run the handler on ``value``, remembering it as the last value."""
        try:
            self.data = self.handler(value, self.data)
        finally:
            self.last_value = value

    def __repr__(self) -> str:
        return f"CustomValueType(default_value={self.default_value!r}, last_value={self.last_value!r})"


@dataclass
class DefaultValue:
    """The registered default of a config value. Custom defaults are kept as text."""

    data: Any
    type: DataType
    handler: Optional[CustomHandler] = None

    @classmethod
    def from_value(cls, value: ConfigValue) -> DefaultValue:
        """Capture the default held by ``value``."""
        if value.type is DataType.EMPTY:
            raise ConfigError("cannot take a default from an empty config value")
        if value.type is DataType.CUSTOM:
            custom = value.custom
            return cls(custom.default_value, DataType.CUSTOM, custom.handler)
        return cls(value.value, value.type)


class ConfigValue:
    """A single typed configuration value."""

    __slots__ = ("type", "_data", "set_by_user")

    def __init__(self, value: Any = None) -> None:
        self.set_by_user = False
        self._data: Any = None
        if value is None:
            self.type = DataType.EMPTY
        elif isinstance(value, CustomValueType):
            self.type = DataType.CUSTOM
            self._data = value
        elif isinstance(value, Vector2D):
            self.type = DataType.VEC2
            self._data = _to_vec2(value)
        elif isinstance(value, str):
            self.type = DataType.STR
            self._data = value
        elif isinstance(value, int):
            self.type = DataType.INT
            self._data = _check_int(int(value))
        elif isinstance(value, float):
            self.type = DataType.FLOAT
            self._data = _to_float32(value)
        else:
            raise TypeError(f"unsupported config value type: {type(value).__name__}")

    @property
    def value(self) -> Any:
        """The stored value; for custom types, the handler's data."""
        if self.type is DataType.EMPTY:
            raise ConfigError("config value is empty")
        if self.type is DataType.CUSTOM:
            return self._data.data
        return self._data

    @property
    def custom(self) -> CustomValueType:
        """The custom value container of a custom-typed value."""
        if self.type is not DataType.CUSTOM:
            raise ConfigError("config value is not of a custom type")
        return self._data

    def copy(self) -> ConfigValue:
        """Return an independent copy; custom values re-run their handler."""
        if self.type is DataType.EMPTY:
            raise ConfigError("cannot copy an empty config value")
        clone = ConfigValue()
        clone.type = self.type
        if self.type is DataType.CUSTOM:
            ref: CustomValueType = self._data
            custom = CustomValueType(ref.handler, ref.default_value)
            with suppress(ParseError):
                custom.data = ref.handler(ref.last_value, custom.data)
            clone._data = custom
        else:
            clone._data = self._data
        return clone

    __copy__ = copy

    def set(self, value: Any) -> None:
        """Replace the stored value, keeping the current type."""
        kind = self.type
        if kind is DataType.INT:
            if not isinstance(value, int):
                raise TypeError("expected an int")
            self._data = _check_int(int(value))
        elif kind is DataType.FLOAT:
            if not isinstance(value, (int, float)):
                raise TypeError("expected a float")
            self._data = _to_float32(float(value))
        elif kind is DataType.STR:
            if not isinstance(value, str):
                raise TypeError("expected a str")
            self._data = value
        elif kind is DataType.VEC2:
            if not isinstance(value, Vector2D):
                raise TypeError("expected a Vector2D")
            self._data = _to_vec2(value)
        elif kind is DataType.CUSTOM:
            raise ConfigError("cannot set a custom value from a plain value")
        else:
            raise ConfigError("cannot set an empty config value")

    def default_from(self, default: DefaultValue) -> None:
        """Reset this value to ``default`` and clear the set-by-user flag."""
        if default.type is DataType.EMPTY:
            raise ConfigError("bad default value type")
        if default.type is DataType.CUSTOM:
            if self.type is not DataType.CUSTOM or not isinstance(self._data, CustomValueType):
                if default.handler is None:
                    raise ConfigError("custom default has no handler")
                self._data = CustomValueType(default.handler, default.data)
            self.type = DataType.CUSTOM
            with suppress(ParseError):
                self._data.apply(default.data)
        else:
            self.type = default.type
            self.set(default.data)
        self.set_by_user = False

    def __repr__(self) -> str:
        if self.type is DataType.EMPTY:
            return "ConfigValue()"
        return f"ConfigValue({self._data!r})"