"""The configuration object: registration, parsing and lookup of values."""

from __future__ import annotations

import os
from typing import Any, Iterable, List, Optional, Union

from .categories import (
    Handler,
    HandlerFunc,
    SpecialCategory,
    SpecialCategoryDescriptor,
    Variable,
    VariableLine,
)
from .parsing import (
    config_string_to_int,
    evaluate_expression,
    find_expression,
    format_float,
    parse_float,
    parse_vec2,
    read_logical_lines,
    strip_comment,
    trim,
)
from .values import (
    ConfigError,
    ConfigOptions,
    ConfigValue,
    DataType,
    DefaultValue,
    HandlerOptions,
    ParseError,
    SpecialCategoryOptions,
)

ANONYMOUS_KEY = "__hyprlang_internal_anonymous_key"
_MAX_EXPANSIONS = 100
_NOERROR_ON = frozenset({"true", "yes", "enable", "enabled", "set"})


class Config:
    """A configuration file (or stream) with registered values and handlers.

    Parsing methods raise :class:`ParseError` carrying every collected
    message; misuse of the object raises :class:`ConfigError`.
    """

    def __init__(self, path: Union[str, "os.PathLike[str]"], options: Optional[ConfigOptions] = None) -> None:
        self.options = options if options is not None else ConfigOptions()
        if self.options.path_is_stream:
            self._stream = str(path)
            self._path = ""
        else:
            self._stream = ""
            self._path = os.fspath(path)
            if not os.path.exists(self._path) and not self.options.allow_missing_config:
                raise ConfigError("File does not exist")

        self._commenced = False
        self._values: dict[str, ConfigValue] = {}
        self._defaults: dict[str, DefaultValue] = {}
        self._handlers: List[Handler] = []
        self._env_variables = sorted(
            (Variable(name, value) for name, value in os.environ.items()),
            key=lambda var: len(var.name),
            reverse=True,
        )
        self._variables: List[Variable] = []
        self._special_categories: List[SpecialCategory] = []
        self._descriptors: List[SpecialCategoryDescriptor] = []
        self._categories: List[str] = []
        self._current_special_key = ""
        self._current_special_category: Optional[SpecialCategory] = None
        self._parse_error = ""
        self._no_error = False

    # registration

    def add_config_value(self, name: str, value: ConfigValue) -> None:
        """Register a value and its default; only allowed before :meth:`commence`."""
        if self._commenced:
            raise ConfigError("Cannot addConfigValue after commence()")
        if name not in self._defaults:
            self._defaults[name] = DefaultValue.from_value(value)

    def register_handler(self, handler: HandlerFunc, name: str, options: Optional[HandlerOptions] = None) -> None:
        """Register ``handler(command, value)`` for keyword ``name``."""
        self._handlers.append(Handler(name, handler, options if options is not None else HandlerOptions()))

    def unregister_handler(self, name: str) -> None:
        """Remove every handler registered under ``name``."""
        self._handlers = [h for h in self._handlers if h.name != name]

    def commence(self) -> None:
        """Freeze the set of values and apply their defaults."""
        self._commenced = True
        for name, default in self._defaults.items():
            self._values.setdefault(name, ConfigValue()).default_from(default)

    def add_special_category(self, name: str, options: Optional[SpecialCategoryOptions] = None) -> None:
        """Register a special category."""
        options = options if options is not None else SpecialCategoryOptions()
        descriptor = SpecialCategoryDescriptor(
            name=name,
            key=options.key or "",
            dont_error_on_missing=bool(options.ignore_missing),
        )
        self._descriptors.append(descriptor)
        if not options.key and not options.anonymous_key_based:
            self._special_categories.append(SpecialCategory(descriptor, name, "", is_static=True))
        if options.anonymous_key_based:
            descriptor.key = ANONYMOUS_KEY
            descriptor.anonymous = True
        self._special_categories.sort(key=lambda cat: len(cat.name), reverse=True)
        self._descriptors.sort(key=lambda desc: len(desc.name), reverse=True)

    def remove_special_category(self, name: str) -> None:
        """Forget a special category and all its instances."""
        self._special_categories = [c for c in self._special_categories if c.name != name]
        self._descriptors = [d for d in self._descriptors if d.name != name]

    def _descriptor(self, category: str) -> SpecialCategoryDescriptor:
        for descriptor in self._descriptors:
            if descriptor.name == category:
                return descriptor
        raise ConfigError("No such category")

    def add_special_config_value(self, category: str, name: str, value: ConfigValue) -> None:
        """Register a value for a special category."""
        descriptor = self._descriptor(category)
        default = descriptor.add_default(name, value)
        for cat in self._special_categories:
            if cat.name == category and cat.is_static:
                cat.values.setdefault(name, ConfigValue()).default_from(default)
                break

    def remove_special_config_value(self, category: str, name: str) -> None:
        """Remove a value from a special category."""
        self._descriptor(category).remove_default(name)

    # parsing

    def parse(self) -> None:
        """Reset to defaults and parse the config file or stream."""
        if not self._commenced:
            raise ConfigError("Cannot parse: not commenced. You have to .commence() first.")
        self._clear_state()
        for name, default in self._defaults.items():
            self._values[name].default_from(default)
        for cat in self._special_categories:
            cat.apply_defaults()

        if self._stream:
            self._parse_lines(self._stream, "", check_flags=False)
            return
        if not os.path.exists(self._path):
            if self.options.allow_missing_config:
                return
            raise ParseError("Config file is missing")
        self.parse_file(os.path.realpath(self._path))

    def parse_file(self, path: Union[str, "os.PathLike[str]"]) -> None:
        """Parse a file on top of the current state, without resetting."""
        path = os.fspath(path)
        try:
            handle = open(path, encoding="utf-8", errors="replace", newline="")
        except OSError:
            raise ParseError("File failed to open") from None
        with handle:
            self._parse_lines(handle, f" in file {path}", check_flags=True)

    def parse_dynamic(self, line: str, value: Optional[str] = None) -> None:
        """Parse one line (or ``command`` and ``value``) at runtime."""
        if value is not None:
            line = f"{line}={value}"
        self._parse_line(line, True)

    def _add_error(self, message: str) -> None:
        if self._parse_error:
            self._parse_error += "\n"
        self._parse_error += message

    def _parse_lines(self, source: Union[str, Iterable[str]], where: str, check_flags: bool) -> None:
        failed = False
        try:
            for number, line in read_logical_lines(source):
                try:
                    self._parse_line(line)
                except ParseError as error:
                    if check_flags and self._no_error:
                        continue
                    if not self._parse_error or self.options.throw_all_errors:
                        self._add_error(f"Config error{where} at line {number}: {error}")
                        failed = True
        except ParseError:
            self._add_error(f"Config error{where}: Last line ends with backslash")
            failed = True

        if self._categories:
            if not self._parse_error or self.options.throw_all_errors:
                self._add_error(f"Config error{where}: Unclosed category at EOF")
                failed = True
            self._categories.clear()

        if failed:
            raise ParseError(self._parse_error)

    def _clear_state(self) -> None:
        self._categories = []
        self._parse_error = ""
        self._variables = [Variable(v.name, v.value) for v in self._env_variables]
        self._special_categories = [c for c in self._special_categories if c.is_static]

    def _parse_comment(self, comment: str) -> None:
        text = trim(comment)
        if not text.startswith("hyprlang"):
            return
        args = text.split()

        def arg(index: int) -> str:
            return args[index] if index < len(args) else ""

        if arg(1) == "noerror":
            self._no_error = arg(2) in _NOERROR_ON

    def _parse_variable(self, lhs: str, rhs: str, dynamic: bool) -> None:
        name = lhs[1:]
        variable = next((v for v in self._variables if v.name == name), None)
        if variable is not None:
            variable.value = rhs
        else:
            variable = Variable(name, rhs)
            self._variables.append(variable)
            self._variables.sort(key=lambda var: len(var.name), reverse=True)

        if dynamic:
            for recorded in list(variable.lines):
                self._categories = list(recorded.categories)
                self._current_special_category = recorded.special_category
                try:
                    self._parse_line(recorded.line, True)
                except ParseError:
                    pass
            self._categories = []

    def _parse_line(self, line: str, dynamic: bool = False) -> None:
        line = trim(line)
        if line.startswith("#"):
            self._parse_comment(line[1:])
            return
        line = trim(strip_comment(line))
        if not line:
            return

        equals = line.find("=")
        if equals < 0 and not line.endswith("{") and line != "}":
            raise ParseError("Invalid config line")

        if equals < 0:
            self._parse_brace(line)
            return

        lhs = trim(line[:equals])
        rhs = trim(line[equals + 1:])
        if not lhs:
            raise ParseError("Empty lhs.")
        is_variable = lhs.startswith("$")

        for iteration in range(_MAX_EXPANSIONS):
            any_match = False
            for var in self._variables:
                token = "$" + var.name
                lhs_hit = not is_variable and token in lhs
                rhs_hit = token in rhs
                if lhs_hit:
                    lhs = lhs.replace(token, var.value)
                if rhs_hit:
                    rhs = rhs.replace(token, var.value)
                if not lhs_hit and not rhs_hit:
                    continue
                if not dynamic:
                    var.lines.append(
                        VariableLine(line, list(self._categories), self._current_special_category)
                    )
                any_match = True

            while "{{" in rhs:
                span = find_expression(rhs)
                if span is None:
                    break
                start, stop = span
                known = {v.name: v.value for v in reversed(self._variables)}
                result = evaluate_expression(rhs[start + 2:stop - 2], known)
                rhs = rhs[:start] + format_float(result) + rhs[stop:]

            if not any_match:
                break
            if iteration == _MAX_EXPANSIONS - 1:
                raise ParseError("Expanding variables exceeded max iteration limit")

        if is_variable:
            self._parse_variable(lhs, rhs, dynamic)
            return

        from .parsing import unescape_expressions

        rhs = unescape_expressions(rhs)

        found = False
        handler_error: Optional[ParseError] = None
        for handler in list(self._handlers):
            if not handler.matches(lhs, self._categories):
                continue
            try:
                handler.func(lhs, rhs)
                handler_error = None
            except ParseError as error:
                handler_error = error
            found = True

        if not found and not self.options.verify_only:
            self._set_value(lhs, rhs)
        if handler_error is not None:
            raise handler_error

    def _parse_brace(self, line: str) -> None:
        if "}" in line:
            if line != "}":
                raise ParseError("Invalid config line")
            if not self._categories:
                raise ParseError("Stray category close")
            self._current_special_key = ""
            self._current_special_category = None
            self._categories.pop()
            return
        if not line.endswith("{"):
            raise ParseError("Invalid category open, garbage after {")
        self._categories.append(trim(line[:-1]))

    def _new_category(self, descriptor: SpecialCategoryDescriptor, key_text: str) -> SpecialCategory:
        category = SpecialCategory(descriptor, descriptor.name, descriptor.key)
        self._special_categories.append(category)
        self.add_special_config_value(descriptor.name, descriptor.key, ConfigValue(key_text))
        category.apply_defaults()
        return category

    def _set_value(self, command: str, value: str) -> None:
        prefix = "".join(cat + ":" for cat in self._categories)
        value_name = prefix + command
        value_only_name = command[len(prefix):] if command.startswith(prefix) else command

        if "[" in value_name and "]" in value_name:
            left = value_name.find("[")
            right = value_name.rfind("]")
            if left < right:
                cat_key = value_name[left + 1:right]
                self._current_special_key = cat_key
                value_name = value_name[:left] + value_name[right + 1:]
                for descriptor in list(self._descriptors):
                    if not descriptor.key or not value_name.startswith(descriptor.name):
                        continue
                    category = self._new_category(descriptor, cat_key)
                    category.values[descriptor.key].set(cat_key)

        target = self._values.get(value_name)
        if target is None:
            target = self._find_special_value(value_name, value_only_name, value)
            if target is None:
                return

        self._assign(target, value)

    def _find_special_value(self, value_name: str, value_only_name: str, value: str) -> Optional[ConfigValue]:
        current = self._current_special_category
        if current is not None and value_name.startswith(current.name):
            found = current.values.get(value_name[len(current.name) + 1:])
            if found is not None:
                return found

        for category in self._special_categories:
            if not value_name.startswith(category.name):
                continue
            if not category.is_static and category.key_value() != self._current_special_key:
                continue
            found = category.values.get(value_name[len(category.name) + 1:])
            self._current_special_category = category
            if found is not None:
                return found
            if category.descriptor.dont_error_on_missing:
                return None
            break

        for descriptor in list(self._descriptors):
            if not descriptor.key or not value_name.startswith(descriptor.name):
                continue
            if value_only_name not in descriptor.default_values and value_only_name != descriptor.key:
                break
            category = self._new_category(descriptor, "0")
            suffix = value_name[len(descriptor.name) + 1:]
            found = category.values.get(suffix)
            self._current_special_category = category
            if descriptor.anonymous:
                biggest = max((c.anonymous_id for c in self._special_categories), default=0) + 1
                category.values[ANONYMOUS_KEY].set(str(biggest))
                self._current_special_key = str(biggest)
                category.anonymous_id = biggest
            else:
                if found is None or suffix != descriptor.key:
                    raise ParseError(
                        "special category's first value must be the key. "
                        f"Key for <{category.name}> is <{category.key}>"
                    )
                self._current_special_key = value
            if found is not None:
                return found
            break

        raise ParseError(f"config option <{value_name}> does not exist.")

    @staticmethod
    def _assign(target: ConfigValue, value: str) -> None:
        kind = target.type
        if kind is DataType.INT:
            target.set(config_string_to_int(value))
        elif kind is DataType.FLOAT:
            try:
                target.set(parse_float(value))
            except ParseError as error:
                raise ParseError(f"failed parsing a float: {error}") from None
        elif kind is DataType.VEC2:
            try:
                target.set(parse_vec2(value))
            except ParseError as error:
                raise ParseError(f"failed parsing a vec2: {error}") from None
        elif kind is DataType.STR:
            target.set(value)
        elif kind is DataType.CUSTOM:
            try:
                target.custom.apply(value)
            except ParseError as error:
                raise ParseError(str(error)) from None
        else:
            raise ParseError("internal error: invalid value found (no type?)")
        target.set_by_user = True

    # lookup

    def get_config_value_ptr(self, name: str) -> Optional[ConfigValue]:
        """The stored value object for ``name``; it stays the same across parses."""
        return self._values.get(name)

    def get_special_config_value_ptr(self, category: str, name: str, key: Optional[str] = None) -> Optional[ConfigValue]:
        """The value object of a special category instance, or ``None``."""
        wanted = key or ""
        for cat in self._special_categories:
            if cat.name != category:
                continue
            if not cat.is_static and cat.key_value() != wanted:
                continue
            return cat.values.get(name)
        return None

    def get_config_value(self, name: str) -> Any:
        """The stored value of ``name``, or ``None`` if unknown."""
        pointer = self.get_config_value_ptr(name)
        return None if pointer is None else pointer.value

    def get_special_config_value(self, category: str, name: str, key: Optional[str] = None) -> Any:
        """The stored value of a special category entry, or ``None``."""
        pointer = self.get_special_config_value_ptr(category, name, key)
        return None if pointer is None else pointer.value

    def special_category_exists_for_key(self, category: str, key: str) -> bool:
        """Tell whether a keyed instance of ``category`` exists for ``key``."""
        return any(
            not cat.is_static and cat.name == category and cat.key_value() == key
            for cat in self._special_categories
        )

    def list_keys_for_special_category(self, category: str) -> List[str]:
        """Keys of every instance of a keyed special category, in creation order."""
        return [
            cat.key_value()
            for cat in self._special_categories
            if not cat.is_static and cat.name == category
        ]


class SimpleConfigValue:
    """A convenient live view of one config value."""

    def __init__(self, config: Config, name: str) -> None:
        pointer = config.get_config_value_ptr(name)
        if pointer is None:
            raise ConfigError("SimpleConfigValue: value not found")
        self._value = pointer

    def get(self) -> Any:
        """The current value."""
        return self._value.value