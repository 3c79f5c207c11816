"""
Bosun flag value types.

A flag value type is a small tagged descriptor that knows how to turn a
command-line token into a Python value and back:

    >>> integer.parse("42")
    42
    >>> boolean.render(False)
    'false'

Built-ins
- boolean: "true"/"false"/"1"/"0" (case-insensitive) <-> bool
- integer: base-10 with optional sign <-> int (bool is not an integer here)
- string:  identity

More types are added with register(); the resolver only ever dispatches on the
descriptor, so registering a type never requires touching the core:

    >>> register("decimal", decimal.Decimal, accepts=decimal.Decimal)
    flag-value(tag='decimal')
"""
import builtins
import functools
from types import MappingProxyType

from .utils import *


class FlagValue(metaclass=IntrospectiveType):
    """
    Tagged value capability: parse(token) -> value, render(value) -> str.

    parse raises when the token cannot be converted (ValueError for the
    built-ins, whatever the callable raises otherwise); the resolver turns any
    such exception into an InvalidFlagValueError. accepts(value) is
    used to infer the type of a declared default and to check defaults
    against an explicit type.
    """

    __introspectable__ = (
        "tag",
    )

    def __init__(self, tag, parse, render=str, accepts=Unset, /):
        if not isinstance(tag, str):
            raise TypeError(f"{type(self).__typename__} 'tag' must be a string")
        elif not (tag := tag.strip()):
            raise ValueError(f"{type(self).__typename__} 'tag' cannot be empty")
        if not callable(parse):
            raise TypeError(f"{type(self).__typename__} 'parse' must be callable")
        if not callable(render):
            raise TypeError(f"{type(self).__typename__} 'render' must be callable")
        if isinstance(accepts, builtins.type | tuple):
            accepts = functools.partial(lambda types, value: isinstance(value, types), accepts)
        elif accepts is Unset:
            accepts = lambda value: True
        elif not callable(accepts):
            raise TypeError(f"{type(self).__typename__} 'accepts' must be a type or a callable")

        self._tag = tag
        self._parse = parse
        self._render = render
        self._accepts = accepts

    def parse(self, token, /):
        if not isinstance(token, str):
            raise TypeError(f"{type(self).__typename__} can only parse strings")
        return self._parse(token)

    def render(self, value, /):
        return self._render(value)

    def accepts(self, value, /):
        return bool(self._accepts(value))

    def __call__(self, token, /):
        return self.parse(token)

    def __str__(self):
        return self.tag


def _parse_boolean(token):
    try:
        return {"true": True, "1": True, "false": False, "0": False}[token.strip().lower()]
    except KeyError:
        raise ValueError(f"invalid boolean literal {token!r}") from None


def _parse_integer(token):
    # int() also accepts digit separators ("1_000"); flags take plain digits.
    if token != token.strip() or "_" in token:
        raise ValueError(f"invalid integer literal {token!r}")
    return int(token, 10)


boolean = FlagValue("boolean", _parse_boolean, lambda value: "true" if value else "false", bool)
integer = FlagValue("integer", _parse_integer, str, lambda value: isinstance(value, int) and not isinstance(value, bool))
string = FlagValue("string", str, str, str)

_registry = {
    "boolean": boolean,
    "integer": integer,
    "string": string,
}
# python type -> descriptor, used by lookup()/typeof(); bool first, it subclasses int.
_pythonic = {
    bool: boolean,
    int: integer,
    str: string,
}


def register(tag, parse, /, render=str, *, accepts=Unset):
    """
    Register a new flag value type and return its descriptor.

    Parameters
    - tag: unique, non-empty name used in messages ("expected a <tag>").
    - parse: callable(str) -> value, raising on bad input.
    - render: callable(value) -> str (defaults to str).
    - accepts: a python type (or tuple of types) or a predicate; when a type
      is given, it also becomes resolvable through lookup(type).

    Raises
    - ValueError when the tag is already registered, or when the python type
      given as accepts is already mapped to another descriptor.
    """
    descriptor = FlagValue(tag, parse, render, accepts)
    if descriptor.tag in _registry:
        raise ValueError(f"flag value type {descriptor.tag!r} is already registered")
    if isinstance(accepts, builtins.type) and accepts in _pythonic:
        raise ValueError(
            f"type {accepts.__name__!r} is already mapped to flag value type {_pythonic[accepts].tag!r}"
        )
    _registry[descriptor.tag] = descriptor
    if isinstance(accepts, builtins.type):
        _pythonic[accepts] = descriptor
    return descriptor


def unregister(tag, /):
    """
    Remove a registered flag value type and return its descriptor.

    Built-in types cannot be removed. Flags already declared with the
    descriptor keep it.
    """
    if tag in ("boolean", "integer", "string"):
        raise ValueError(f"built-in flag value type {tag!r} cannot be unregistered")
    try:
        descriptor = _registry.pop(tag)
    except KeyError:
        raise ValueError(f"unknown flag value type {tag!r}") from None
    for python, mapped in list(_pythonic.items()):
        if mapped is descriptor:
            del _pythonic[python]
    return descriptor


def lookup(x, /):
    """
    Resolve a descriptor from a FlagValue, a registered tag, or a python type.
    """
    if isinstance(x, FlagValue):
        return x
    if isinstance(x, str):
        try:
            return _registry[x]
        except KeyError:
            raise ValueError(f"unknown flag value type {x!r}") from None
    if isinstance(x, builtins.type):
        try:
            return _pythonic[x]
        except KeyError:
            raise TypeError(f"type {x.__name__!r} is not a registered flag value type") from None
    raise TypeError("flag value type must be a flag-value, a tag or a type")


def typeof(value, /):
    """
    Infer the descriptor of a declared default value.

    Exact python types win; otherwise the first registered descriptor that
    accepts the value is used (built-ins first, in declaration order).
    """
    try:
        return _pythonic[type(value)]
    except KeyError:
        pass
    for descriptor in _registry.values():
        if descriptor.accepts(value):
            return descriptor
    raise TypeError(f"no flag value type accepts {type(value).__name__!r} values")


def registry():
    """
    Read-only view of the registered descriptors (tag -> descriptor).
    """
    return MappingProxyType(_registry)


__all__ = (
    "FlagValue",
    "boolean",
    "integer",
    "string",
    "register",
    "unregister",
    "lookup",
    "typeof",
    "registry",
)
