"""Handlers, variables and special categories kept by a configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .values import ConfigError, ConfigValue, DataType, DefaultValue, HandlerOptions

HandlerFunc = Callable[[str, str], Any]


@dataclass
class Handler:
    """A keyword handler, called as ``func(command, value)``."""

    name: str
    func: HandlerFunc
    options: HandlerOptions = field(default_factory=HandlerOptions)

    def matches(self, lhs: str, categories: Sequence[str]) -> bool:
        """Tell whether this handler should receive ``lhs`` inside ``categories``.

        Scoped names (containing ``:``) only match inside exactly the
        categories they name; a leading ``:`` scopes a handler to the top
        level. Flag handlers match any unscoped keyword they prefix.
        """
        unscoped = ":" not in self.name
        handler_name = self.name[1:] if self.name.startswith(":") else self.name
        allow_flags = self.options.allow_flags

        if not allow_flags and not unscoped:
            index = 0
            depth = 0
            while depth < len(categories):
                colon = handler_name.find(":", index)
                if colon < 0 or handler_name[index:colon] != categories[depth]:
                    break
                index = colon + 1
                depth += 1
            if depth != len(categories) or handler_name[index:] != lhs:
                return False

        if unscoped and not allow_flags and handler_name != lhs:
            return False

        if allow_flags and (not lhs.startswith(handler_name) or ":" in lhs):
            return False

        return True


@dataclass(eq=False)
class VariableLine:
    """A config line that used a variable, remembered for dynamic re-parsing."""

    line: str
    categories: List[str] = field(default_factory=list)
    special_category: Optional[SpecialCategory] = None


@dataclass(eq=False)
class Variable:
    """A ``$name = value`` variable and the lines that referenced it."""

    name: str
    value: str = ""
    lines: List[VariableLine] = field(default_factory=list)


@dataclass(eq=False)
class SpecialCategoryDescriptor:
    """The registered shape of a special category.

    An empty ``key`` marks a static (key-less) category.
    """

    name: str
    key: str = ""
    default_values: Dict[str, DefaultValue] = field(default_factory=dict)
    dont_error_on_missing: bool = False
    anonymous: bool = False

    def add_default(self, name: str, value: ConfigValue) -> DefaultValue:
        """Register a default for ``name``; an existing default is kept.

        Returns the default now registered under ``name``.
        """
        if name not in self.default_values:
            self.default_values[name] = DefaultValue.from_value(value)
        return self.default_values[name]

    def remove_default(self, name: str) -> None:
        """Forget the default registered under ``name``, if any."""
        self.default_values.pop(name, None)


@dataclass(eq=False)
class SpecialCategory:
    """One instance of a special category with its current values."""

    descriptor: SpecialCategoryDescriptor
    name: str
    key: str = ""
    values: Dict[str, ConfigValue] = field(default_factory=dict)
    is_static: bool = False
    anonymous_id: int = 0

    def apply_defaults(self) -> None:
        """Reset every value with a registered default to that default."""
        for name, default in self.descriptor.default_values.items():
            self.values.setdefault(name, ConfigValue()).default_from(default)

    def key_value(self) -> str:
        """The text of this instance's key value."""
        value = self.values.get(self.key)
        if value is None or value.type is not DataType.STR:
            raise ConfigError(f"special category <{self.name}> has no key value")
        return value.value