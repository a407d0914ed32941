# hyprlang

A library for reading hypr-style configuration files: nested categories,
variables, simple arithmetic expressions, handlers for custom keywords and
"special" categories that can appear many times under different keys.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## The configuration language

```
# comments start with a hash; write ## for a literal hash
$GAPS = 5
$ACCENT = rgba(33ccffee)

general {
    gaps_in = $GAPS
    gaps_out = {{GAPS * 2}}
    border_color = $ACCENT

    decoration {
        size = 12 34
    }
}

long_value = first part \
             second part
```

- `name = value` sets a value; `name {` ... `}` opens and closes a category,
  so the value above is addressed as `general:gaps_in`.
- `$NAME = value` defines a variable; `$NAME` is replaced wherever it
  appears. Environment variables are available the same way.
- `{{a + b}}` evaluates one `+`, `-`, `*` or `/` between two numbers or
  variable names (written without `$`). Write `\{{` to keep the braces
  literally.
- Integers accept decimal, `0x` hex, `rgb(...)`, `rgba(...)` (stored as
  ARGB) and the words `true`/`yes`/`on`, `false`/`no`/`off`. Floats are
  kept at single precision; a vector is two floats separated by one space.
- A line ending in a backslash continues on the next line.
- In a file, the comment `# hyprlang noerror true` suppresses error
  reporting for the lines that follow, and `# hyprlang noerror false`
  turns it back on.

## Using it

```python
from hyprlang.config import Config, SimpleConfigValue
from hyprlang.values import (
    ConfigOptions,
    ConfigValue,
    HandlerOptions,
    ParseError,
    Vector2D,
)

config = Config("hyprland.conf", ConfigOptions())

# Declare every value with its default before commence().
config.add_config_value("general:gaps_in", ConfigValue(0))
config.add_config_value("general:gaps_out", ConfigValue(0))
config.add_config_value("general:border_color", ConfigValue(0))
config.add_config_value("general:decoration:size", ConfigValue(Vector2D(0, 0)))
config.add_config_value("long_value", ConfigValue(""))

# Keywords that your program interprets itself.
def on_exec(command, value):
    print("would run", value)

config.register_handler(on_exec, "exec", HandlerOptions())

config.commence()

try:
    config.parse()
except ParseError as error:
    print(error)

print(config.get_config_value("general:gaps_out"))

gaps = SimpleConfigValue(config, "general:gaps_in")
print(gaps.get())
```

`Config` raises `ConfigError` if the file does not exist, unless
`ConfigOptions(allow_missing_config=True)` is given. Other options:

- `path_is_stream`: the first argument is the configuration text itself.
- `throw_all_errors`: collect every error instead of only the first; the
  messages are joined by newlines in the raised `ParseError`.
- `verify_only`: check the syntax and call handlers, but do not set values.

`parse()` resets every value to its default and reads the file again.
`parse_file(path)` reads another file on top of the current state, which is
what a `source = ...` handler would call. Values can also be changed at
runtime; these changes last until the next `parse()`:

```python
config.parse_dynamic("general:gaps_in", "8")
config.parse_dynamic("$GAPS = 10", None)
```

Redefining a variable dynamically re-applies the lines that used it.

`get_config_value_ptr(name)` returns the `ConfigValue` object itself; it
stays the same across parses, and its `set_by_user` flag tells whether the
configuration set it. `get_config_value(name)` returns `None` for an unknown
name.

### Handlers

A handler is called as `handler(command, value)` and may raise `ParseError`
to report a problem with the line. A name containing `:` such as
`"general:exec"` only matches inside exactly those categories; a leading
`:` (`":exec"`) matches only at the top level; a plain name matches
anywhere. With `HandlerOptions(allow_flags=True)` the handler receives any
keyword that starts with its name, so `bindm` reaches a handler named
`bind`. `unregister_handler(name)` removes it again.

### Special categories

A special category, registered with `add_special_category(name, options)`
and filled with `add_special_config_value`, can occur several times in a
file. `SpecialCategoryOptions` chooses its kind:

- `key="name"`: instances are told apart by the value `name`, which must be
  the first value set in each block, or given inline as `device[mouse] {`.
- `anonymous_key_based=True`: instances are numbered `1`, `2`, ...
  automatically.
- neither: a static category that exists exactly once.
- `ignore_missing=True`: unknown values inside it are silently ignored.

Query them with `get_special_config_value(category, name, key)`,
`special_category_exists_for_key(category, key)` and
`list_keys_for_special_category(category)`. `remove_special_category` and
`remove_special_config_value` undo the registrations.

### Custom value types

`CustomValueType(handler, default_value)` lets a value be interpreted by
your own function. The handler is called as `handler(text, data)` with the
raw text and the data it returned last time (initially `None`), and returns
the new data; it raises `ParseError` to reject the text.
`ConfigValue(CustomValueType(...))` registers it like any other value, and
`get_config_value` returns the handler's data.

## What it does not do

This is a library only: it has no command-line tool, and it does not write
configuration files back out.