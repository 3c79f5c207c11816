"""
Bosun resolver: turn raw argv-like tokens into a matched command and typed flags.

Phases
- matching
  • greedily descend the command tree while the next token is not flag-shaped
    and names (or aliases) a child of the current command.
- tokenizing + binding
  • '--name' / '--name=value' are long flags, '-x' / '-x=value' short flags;
    '-abc' is a cluster of short flags (booleans bind true, the first
    value-bearing flag takes the rest of the cluster, or the next token).
  • anything else, and the literal '-', is positional.
  • the literal '--' ends flag parsing; it is dropped and every later token is
    positional.
  • boolean flags without an inline value bind True and consume nothing;
    other flags take the inline value or the next token (which must not be
    flag-shaped).
- validation
  • every visible required flag must end with a value (explicit or default).
  • explicitly set deprecated flags, and a deprecated matched command, yield
    non-fatal warnings in the result.

Purity
- resolve() reads declarations only (names, types, defaults), never the
  values left by a previous run, so identical inputs give identical results.
- the flags are written once, after validation succeeded, under a lock
  (commit step); a failed resolution leaves every flag untouched.

Faults
- UnknownFlagError, MissingFlagValueError, InvalidFlagValueError and
  MissingRequiredFlagError are raised as structured exceptions; callers
  (see commands.invoke) decide whether to render, exit or retry.
"""
import difflib
import functools
from collections import deque
from collections.abc import Iterable, Mapping
from threading import Lock
from typing import NamedTuple

from .faults import *
from .flags import Binding
from .utils import Unset

_lock = Lock()


@functools.cache  # Memoize to avoid recomputing common ordinals in messages
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth") for nicer phrasing.
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # Handle the “teens” exception: 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _article(word):
    return ("an " if word[:1].lower() in "aeiou" else "a ") + word


def _flagish(token):
    return token.startswith("-") and token != "-"


class BoundFlags(Mapping):
    """
    Read-only mapping of long flag name -> resolved value.

    Only flags that ended the resolution with a value are present. binding()
    tells apart values typed by the user from declared defaults.
    """

    def __init__(self, values=(), bindings=(), /):
        self._values = dict(values)
        self._bindings = dict(bindings)

    def __getitem__(self, name):
        return self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def binding(self, name, /):
        return self._bindings.get(name, Binding.UNBOUND)

    def explicit(self):
        """
        Names of the flags supplied on the command line, in input order.
        """
        return tuple(name for name, binding in self._bindings.items() if binding is Binding.ARGUMENT)

    def getbool(self, name, /):
        value = self._values.get(name)
        return value if isinstance(value, bool) else None

    def getint(self, name, /):
        value = self._values.get(name)
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    def getstr(self, name, /):
        value = self._values.get(name)
        return value if isinstance(value, str) else None

    def __repr__(self):
        return f"bound-flags({self._values!r})"

    def __rich_repr__(self):
        yield from self._values.items()


class ParseResult(NamedTuple):
    """
    Outcome of one successful resolution.

    - command: the deepest matched command.
    - flags: BoundFlags of every visible flag that has a value.
    - args: positional arguments, in input order.
    - warnings: non-fatal deprecation warnings, in input order.
    """
    command: object
    flags: BoundFlags
    args: tuple
    warnings: tuple = ()


def _sanitize(tokens):
    if isinstance(tokens, str) or not isinstance(tokens, Iterable):
        raise TypeError("resolve() tokens must be an iterable of strings")
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError("resolve() tokens must be an iterable of strings")
        yield token


def _match(root, tokens):
    """
    Phase 1: consume command names from the front of the token deque.
    """
    command = root
    while tokens and not tokens[0].startswith("-"):
        if (child := command.lookup(tokens[0])) is None:
            break
        tokens.popleft()
        command = child
    return command


class _Binder:
    """
    Phases 2 and 3: walk the remaining tokens, binding flags and collecting
    positional arguments. One instance per resolve() call.
    """

    def __init__(self, command, tokens, index):
        self.command = command
        self.visible = command.visible_flags()
        self.tokens = tokens
        self.index = index
        self.explicit = {}
        self.positionals = []

    @property
    def route(self):
        return " ".join(step.name for step in self.command.path)

    def run(self):
        while self.tokens:
            token = self.tokens.popleft()
            self.index += 1

            if token == "--":
                self.positionals.extend(self.tokens)
                self.tokens.clear()
            elif not _flagish(token):
                self.positionals.append(token)
            elif token.startswith("--"):
                name, sep, value = token[2:].partition("=")
                self.bind(self.find(name), "--" + name, value if sep else Unset)
            else:
                self.cluster(token)

        return self.explicit, tuple(self.positionals)

    def cluster(self, token):
        names, sep, value = token[1:].partition("=")
        if not names:
            self.find(names, short=True)
        for offset, name in enumerate(names, 1):
            flag = self.find(name, short=True)
            if offset == len(names):
                self.bind(flag, "-" + name, value if sep else Unset)
            elif flag.boolean:
                self.bind(flag, "-" + name, Unset)
            else:
                # Rest of the cluster is the value: "-ofile" means "-o file".
                self.bind(flag, "-" + name, names[offset:] + (sep + value))
                return

    def find(self, name, /, *, short=False):
        flag = self.visible.lookup(name, short=short)
        if flag is not None:
            return flag

        spelled = ("-" if short else "--") + name
        candidates = ["--" + long for long in self.visible.longs()]
        suggestions = difflib.get_close_matches(spelled, candidates, 5)
        try:
            hint = "did you mean %r? check the spelling or remove it" % suggestions[0]
        except IndexError:
            hint = "'%s' accepts no such flag; check the spelling or remove it" % self.route
        raise UnknownFlagError(
            "unknown flag %r at %s position" % (spelled, _ordinal(self.index)),
            title="unknown flag",
            code=FaultCode.UNKNOWN_FLAG,
            name=name,
            input=spelled,
            index=self.index,
            suggestions=tuple(suggestions),
            hint=hint,
            tool=self.command,
            docs=getdoc(FaultCode.UNKNOWN_FLAG),
        )

    def bind(self, flag, spelled, value):
        start = self.index
        if value is Unset:
            if flag.boolean:
                self.store(flag, True)
                return
            if not self.tokens or _flagish(self.tokens[0]):
                raise MissingFlagValueError(
                    "flag %r at %s position requires a value" % (spelled, _ordinal(start)),
                    title="missing flag value",
                    code=FaultCode.MISSING_FLAG_VALUE,
                    name=flag.long,
                    input=spelled,
                    index=start,
                    hint="pass a value after it (for example: %s <value>) or inline it (%s=<value>)" % (
                        spelled, spelled
                    ),
                    tool=self.command,
                    docs=getdoc(FaultCode.MISSING_FLAG_VALUE),
                )
            value = self.tokens.popleft()
            self.index += 1

        try:
            converted = flag.type.parse(value)
        except Exception:
            raise InvalidFlagValueError(
                "flag %r at %s position got %r, expected %s" % (
                    spelled, _ordinal(start), value, _article(flag.type.tag)
                ),
                title="invalid flag value",
                code=FaultCode.INVALID_FLAG_VALUE,
                name=flag.long,
                token=value,
                expected=flag.type.tag,
                input=spelled,
                index=start,
                hint="pass %s to %s" % (_article(flag.type.tag), spelled),
                tool=self.command,
                docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
            ) from None
        self.store(flag, converted)

    def store(self, flag, value):
        # Last occurrence wins; keep input order for explicit().
        self.explicit.pop(flag.long, None)
        self.explicit[flag.long] = value


def _validate(command, visible, explicit):
    """
    Phase 4: settle every visible flag and collect deprecation warnings.
    """
    values = {}
    bindings = {}
    for flag in visible:
        if flag.long in explicit:
            continue
        if flag.default is not None:
            values[flag.long] = flag.default
            bindings[flag.long] = Binding.DEFAULT
        elif flag.required:
            route = " ".join(step.name for step in command.path)
            raise MissingRequiredFlagError(
                "required flag '--%s' was not provided" % flag.long,
                title="missing required flag",
                code=FaultCode.MISSING_REQUIRED_FLAG,
                name=flag.long,
                hint="run '%s --%s=<value>'" % (route, flag.long),
                tool=command,
                docs=getdoc(FaultCode.MISSING_REQUIRED_FLAG),
            )

    warnings = []
    if command.deprecated:
        warnings.append(DeprecatedCommandWarning(
            "command %r is deprecated" % command.name,
            title="deprecated command",
            code=FaultCode.DEPRECATED_COMMAND,
            name=command.name,
            reason=command.deprecated,
            hint=command.deprecated,
            tool=command,
            docs=getdoc(FaultCode.DEPRECATED_COMMAND),
        ))
    for name in explicit:
        values[name] = explicit[name]
        bindings[name] = Binding.ARGUMENT
        if (flag := visible.lookup(name)).deprecated:
            warnings.append(DeprecatedFlagWarning(
                "flag '--%s' is deprecated" % name,
                title="deprecated flag",
                code=FaultCode.DEPRECATED_FLAG,
                name=name,
                reason=flag.deprecated,
                hint=flag.deprecated,
                tool=command,
                docs=getdoc(FaultCode.DEPRECATED_FLAG),
            ))

    return values, bindings, tuple(warnings)


def _commit(visible, values, bindings):
    with _lock:
        for flag in visible:
            binding = bindings.get(flag.long, Binding.UNBOUND)
            flag._bind(values.get(flag.long), binding)


def resolve(root, tokens, /):
    """
    Resolve argv-like tokens (program name excluded) against a command tree.

    Parameters
    - root: the command to start matching from (usually the tree root).
    - tokens: iterable of strings; a plain string is rejected (split it first,
      e.g. with shlex.split, or use invoke()).

    Returns
    - ParseResult(command, flags, args, warnings).

    Raises
    - UnknownFlagError, MissingFlagValueError, InvalidFlagValueError,
      MissingRequiredFlagError (all ResolutionError).
    - TypeError when tokens is not an iterable of strings.
    """
    tokens = deque(_sanitize(tokens))
    total = len(tokens)
    command = _match(root, tokens)

    binder = _Binder(command, tokens, total - len(tokens))
    explicit, args = binder.run()
    values, bindings, warnings = _validate(command, binder.visible, explicit)

    _commit(binder.visible, values, bindings)
    return ParseResult(command, BoundFlags(values, bindings), args, warnings)


__all__ = (
    "BoundFlags",
    "ParseResult",
    "resolve",
)
