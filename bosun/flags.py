r"""
Bosun flag declarations.

Overview
- Flag: one declared option of a command; identity (long/short name), value
  type, default, requiredness, inheritability, deprecation and description.
- FlagSet: the insertion-ordered, name-unique collection of flags declared
  directly on one command.
- Binding: the explicit per-flag state machine written by the resolver,
  UNBOUND -> DEFAULT | ARGUMENT.

Declaration forms
    >>> Flag("debug", "d", value=True, descr="print debug output")   # default-bearing
    >>> Flag("jobs", "j", type=int)                                   # typed, optional
    >>> Flag("token", type="string", required=True)                   # typed, required

- With value=: the type is inferred from the value (or checked against an
  explicit type); required and inheritable default to True.
- Without value=: type is mandatory; required and inheritable default to
  False, and the flag starts unbound.

Validation highlights
- Long names are non-empty and contain neither whitespace nor control
  characters; they are case-sensitive and define flag identity (==, hash).
- Short names are exactly one alphanumeric character.
- Malformed names raise InvalidFlagNameError; wrong metadata types raise
  TypeError.

Flags never register themselves anywhere: adding them to a FlagSet (usually
through Command.add) is the only way they become reachable.
"""
import builtins
from enum import Enum

from .faults import *
from .utils import *
from . import values


class Binding(Enum):
    """
    How a flag obtained its current value during the last resolution.
    """
    UNBOUND = "unbound"
    DEFAULT = "default"
    ARGUMENT = "argument"


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate the long and short names of a flag.

    Raises
    - TypeError: when a name is not a string.
    - InvalidFlagNameError: when a name is malformed.
    """
    if not isinstance(long := metadata["long"], str):
        raise TypeError(f"{cls.__typename__} long name must be a string")
    elif not long:
        raise InvalidFlagNameError(f"{cls.__typename__} long name cannot be empty")
    elif any(char.isspace() or not char.isprintable() for char in long):
        raise InvalidFlagNameError(
            f"{cls.__typename__} long name {long!r} cannot contain whitespace or control characters"
        )

    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} short name must be a string")
    elif isinstance(short, str) and (len(short) != 1 or not short.isalnum()):
        raise InvalidFlagNameError(
            f"{cls.__typename__} short name {short!r} must be a single alphanumeric character"
        )
    metadata["short"] = coalesce(short)


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: resolve the construction path and normalize the remaining fields.

    The default-bearing path infers the type from the value; the typed path
    requires an explicit type. Requiredness and inheritability take their
    path-specific defaults when Unset.
    """
    if metadata["value"] is not Unset:
        if metadata["type"] is Unset:
            descriptor = values.typeof(metadata["value"])
        elif not (descriptor := values.lookup(metadata["type"])).accepts(metadata["value"]):
            raise TypeError(f"{cls.__typename__} default value is not a valid {descriptor.tag}")
        metadata["required"] = bool(coalesce(metadata["required"], True))
        metadata["inheritable"] = bool(coalesce(metadata["inheritable"], True))
    elif metadata["type"] is Unset:
        raise TypeError(f"{cls.__typename__} must specify either a default 'value' or a 'type'")
    else:
        descriptor = values.lookup(metadata["type"])
        metadata["required"] = bool(coalesce(metadata["required"], False))
        metadata["inheritable"] = bool(coalesce(metadata["inheritable"], False))
    metadata["type"] = descriptor
    metadata["default"] = coalesce(metadata.pop("value"))

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    metadata["descr"] = coalesce(descr.strip() if isinstance(descr, str) else descr) or None

    if not isinstance(deprecated := metadata["deprecated"], str | bool | Unset):
        raise TypeError(f"{cls.__typename__} 'deprecated' must be a message or a boolean")
    elif deprecated is True:
        deprecated = f"flag '--{metadata['long']}' is deprecated"
    elif isinstance(deprecated, str) and not (deprecated := deprecated.strip()):
        raise ValueError(f"{cls.__typename__} deprecation message cannot be empty")
    metadata["deprecated"] = deprecated or None


class Flag(metaclass=IntrospectiveType):
    """
    Named, typed command-line option bound to a value.

    Properties
    - The names listed in __introspectable__ are exposed as read-only
      attributes mirroring the sanitized declaration.
    - value/binding reflect the last successful resolution that saw this flag
      (see resolver.resolve); they are the only fields that ever change.
    """

    __introspectable__ = (
        "long",
        "short",
        "type",
        "default",
        "required",
        "inheritable",
        "deprecated",
        "descr",
    )

    __displayable__ = (
        "long",
        "short",
        "type",
        "default",
        "required",
        "inheritable",
        "deprecated",
    )

    def __init__(
            self,
            long,
            short=Unset,
            /,
            *,
            value=Unset,
            type=Unset,
            required=Unset,
            inheritable=Unset,
            descr=Unset,
            deprecated=Unset
    ):
        metadata = {
            "long": long,
            "short": short,
            "value": value,
            "type": type,
            "required": required,
            "inheritable": inheritable,
            "descr": descr,
            "deprecated": deprecated,
        }
        _sanitize_names(builtins.type(self), metadata)
        _sanitize_metadata(builtins.type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        self._value = None
        self._binding = Binding.UNBOUND

    @property
    def value(self):
        """
        Current bound value; None while the flag is unbound.
        """
        return self._value

    @property
    def binding(self):
        return self._binding

    @property
    def was_set(self):
        """
        True when the current value was supplied on the command line.
        """
        return self._binding is Binding.ARGUMENT

    @property
    def boolean(self):
        return self._type is values.boolean

    @property
    def names(self):
        """
        Spelled-out names as typed by users, e.g. ("--verbose", "-v").
        """
        return ("--" + self._long,) + (("-" + self._short,) if self._short else ())

    def render(self):
        """
        Render the current value (or the default while unbound) through the
        flag type; None when there is nothing to render.
        """
        if self._binding is not Binding.UNBOUND:
            return self._type.render(self._value)
        if self._default is not None:
            return self._type.render(self._default)
        return None

    def _bind(self, value, binding, /):
        # Only the resolver's commit step calls this.
        self._value = value
        self._binding = binding

    def __eq__(self, other):
        if not isinstance(other, Flag):
            return NotImplemented
        return self._long == other._long

    def __hash__(self):
        return hash(self._long)


class FlagSet(metaclass=IntrospectiveType):
    """
    Insertion-ordered collection of the flags declared on one command.

    Lookups are O(1) by long name or by short name. Enumeration keeps the
    declaration order, which help collaborators rely on.
    """

    def __init__(self, flags=(), /):
        self._longs = {}
        self._shorts = {}
        for flag in flags:
            self.add(flag)

    def add(self, flag, /):
        """
        Add a flag to the set.

        Raises
        - TypeError: when flag is not a Flag.
        - DuplicateFlagError: when its long or short name is already taken.
        """
        if not isinstance(flag, Flag):
            raise TypeError(f"{type(self).__typename__} can only hold flags")
        if flag.long in self._longs:
            raise DuplicateFlagError(f"flag '--{flag.long}' is already declared")
        if flag.short and flag.short in self._shorts:
            raise DuplicateFlagError(
                f"flag '-{flag.short}' is already declared by '--{self._shorts[flag.short].long}'"
            )
        self._longs[flag.long] = flag
        if flag.short:
            self._shorts[flag.short] = flag
        return flag

    def _overlay(self, flag, /):
        """
        Internal: add a flag unless shadowed by one already present.

        Used to assemble visible flags nearest-first: a present long or short
        name hides the incoming flag entirely.
        """
        if flag.long in self._longs or (flag.short and flag.short in self._shorts):
            return False
        self._longs[flag.long] = flag
        if flag.short:
            self._shorts[flag.short] = flag
        return True

    def lookup(self, name, /, *, short=False):
        """
        Return the flag named `name` (short name when short=True) or None.
        """
        return (self._shorts if short else self._longs).get(name)

    def longs(self):
        return self._longs.keys()

    def __iter__(self):
        return iter(self._longs.values())

    def __len__(self):
        return len(self._longs)

    def __contains__(self, object):
        if isinstance(object, Flag):
            return self._longs.get(object.long) is object
        return object in self._longs

    def __repr__(self):
        return f"{type(self).__typename__}({', '.join(map(repr, self._longs))})"

    def __rich_repr__(self):
        yield from self._longs.values()


__all__ = (
    "Binding",
    "Flag",
    "FlagSet",
)
