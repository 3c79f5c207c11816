"""
Bosun faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- Declaration errors: raised immediately while a command tree is being built
  (programming mistakes of the integrator). They are plain ValueErrors that
  carry a fault code.
- Resolution faults: CommandException / CommandWarning types that carry a
  message + options and know how to render themselves in a friendly,
  lowercased, actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Integration
- resolve() raises resolution faults carrying structured fields (name, token,
  expected, ...) and collects warnings in its result.
- invoke() merges the command's presentation switches into the fault with
  copy.replace() and calls trigger(); in shell mode the fault is rendered with
  rich on stderr, otherwise it is raised (or warned).
"""
import copy
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, rename

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - declaration (1010x)
      • INVALID_FLAG_NAME, DUPLICATE_FLAG, DUPLICATE_COMMAND
    - resolution (1111x)
      • UNKNOWN_FLAG, MISSING_FLAG_VALUE, INVALID_FLAG_VALUE, MISSING_REQUIRED_FLAG
    - warnings (1211x)
      • DEPRECATED_FLAG, DEPRECATED_COMMAND

    codes are normalized to a string via normalize() so hosts can remap them.
    """
    # --- declaration errors (10xxx) ---
    INVALID_FLAG_NAME     = 10101
    DUPLICATE_FLAG        = 10102
    DUPLICATE_COMMAND     = 10103

    # --- resolution errors (11xxx) ---
    UNKNOWN_FLAG          = 11111
    MISSING_FLAG_VALUE    = 11112
    INVALID_FLAG_VALUE    = 11113
    MISSING_REQUIRED_FLAG = 11114

    # --- warnings (12xxx) ---
    DEPRECATED_FLAG       = 12111
    DEPRECATED_COMMAND    = 12112

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class DeclarationError(ValueError):
    """
    base type for errors detected while declaring flags and commands.

    these abort program setup: they are raised at the faulty call site and are
    never deferred to resolution time.
    """
    code = Unset

    def __init__(self, message, /):
        super().__init__(message)
        self.message = message


class InvalidFlagNameError(DeclarationError):
    code = FaultCode.INVALID_FLAG_NAME


class DuplicateFlagError(DeclarationError):
    code = FaultCode.DUPLICATE_FLAG


class DuplicateCommandError(DeclarationError):
    code = FaultCode.DUPLICATE_COMMAND


def _option(name, /):
    """
    read-only property exposing one of the fault options as an attribute.
    """
    @rename(name)
    def getter(self):
        return self.options.get(name)

    return property(getter)


def _render(fault, palette, title):
    """
    build the rich renderable shared by exceptions and warnings.

    palette keys are merged with __main__.__styles__ so hosts can restyle the
    output; when colorful is off every style collapses to plain text.
    """
    main = __import__("__main__")
    options = defaultdict(bool, fault.options)

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not options["colorful"]:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    tool = options["tool"]
    prog = text(getattr(main, "__prog__", tool.root.name if tool else "bosun"), "prog-name")

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(options["code"].normalize() if options["code"] else "", "code"),
        " | ",
        text(str(options["title"] or "").title(), title),
        " ]"
    )
    message = text(fault.message, title.replace("title", "message"))
    hint = Text.assemble(text(" → ", "hint-arrow"), text(options["hint"], "hint"))

    if options["fancy"]:
        return Panel(Group(message, hint), title=header, title_align="left")

    return Group(header, message, hint)


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        }, "error-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})

    def __str__(self):
        return str(self.message)


class ResolutionError(CommandException):
    """
    base type for the faults raised by resolve(); never retried internally.
    """
    code = _option("code")
    tool = _option("tool")


class UnknownFlagError(ResolutionError):
    name = _option("name")
    suggestions = _option("suggestions")


class MissingFlagValueError(ResolutionError):
    name = _option("name")


class InvalidFlagValueError(ResolutionError):
    name = _option("name")
    token = _option("token")
    expected = _option("expected")


class MissingRequiredFlagError(ResolutionError):
    name = _option("name")


class CommandWarning(Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        }, "warning-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})

    def __str__(self):
        return str(self.message)

    code = _option("code")
    tool = _option("tool")


class DeprecatedFlagWarning(CommandWarning):
    name = _option("name")
    reason = _option("reason")


class DeprecatedCommandWarning(CommandWarning):
    name = _option("name")
    reason = _option("reason")


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions
      are raised and warnings are emitted through the warnings module.

    typical options
    - tool, shell, fancy, colorful, title, code, hint, and any other context
      the reporter may want to show (e.g., name/token/expected).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings. when
    not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "DeclarationError",
    "InvalidFlagNameError",
    "DuplicateFlagError",
    "DuplicateCommandError",
    "CommandException",
    "ResolutionError",
    "UnknownFlagError",
    "MissingFlagValueError",
    "InvalidFlagValueError",
    "MissingRequiredFlagError",
    "CommandWarning",
    "DeprecatedFlagWarning",
    "DeprecatedCommandWarning",
    "trigger",
    "getdoc",
)
