"""
Bosun command layer: declare, compose, and run CLI commands.

What this module provides
- Command: a node of the command tree with:
  • a name (plus optional aliases) matched against leading tokens,
  • its own FlagSet, and the flags it inherits from its ancestors,
  • an action called as action(flags, args) after a successful resolution.

- Factories and helpers:
  • command(...): create a Command or a decorator that produces one.
  • invoke(obj, prompt): resolve a prompt against a command tree and dispatch.

Quick start
    from bosun import command, invoke, Flag

    @command(flags=[Flag("verbose", "v", value=False)])
    def git(flags, args):
        ...

    @git.command(flags=[Flag("url", type=str, required=True)])
    def remote(flags, args):
        print(flags["url"], flags["verbose"], args)

    if __name__ == "__main__":
        invoke(git, "remote --url=https://example.org -v origin")

Design notes
- Parents hold their children; children keep a plain back-reference to their
  parent for path reconstruction and inherited-flag lookup.
- Inheritance is computed on demand (visible_flags), so flags added to an
  ancestor after its children were attached are still inherited.
- Presentation switches (shell/fancy/colorful) are inherited from the parent
  when left unset.
"""
import shlex
import sys
from collections.abc import Iterable
from types import MappingProxyType

from .faults import *
from .flags import Flag, FlagSet
from .resolver import resolve
from .utils import *


def _sanitize_name(cls, name, /, *, what="name"):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {what} must be a string")
    elif not name or any(char.isspace() or not char.isprintable() for char in name):
        raise ValueError(f"{cls.__typename__} {what} {name!r} must be non-empty and contain no whitespace")
    elif name.startswith("-"):
        raise ValueError(f"{cls.__typename__} {what} {name!r} cannot start with '-'")
    return name


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate and normalize command metadata in place.
    """
    metadata["name"] = _sanitize_name(cls, metadata["name"])

    if not isinstance(aliases := metadata["aliases"], Iterable) or isinstance(aliases, str):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
    sanitized = []
    for alias in aliases:
        if _sanitize_name(cls, alias, what="alias") in sanitized or alias == metadata["name"]:
            raise ValueError(f"{cls.__typename__} 'aliases' cannot contain duplicates")
        sanitized.append(alias)
    metadata["aliases"] = tuple(sanitized)

    if not callable(action := metadata["action"]) and action is not Unset:
        raise TypeError(f"{cls.__typename__} 'action' must be callable")
    metadata["action"] = coalesce(action)

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    metadata["descr"] = coalesce(descr.strip() if isinstance(descr, str) else descr) or None

    if not isinstance(deprecated := metadata["deprecated"], str | bool | Unset):
        raise TypeError(f"{cls.__typename__} 'deprecated' must be a message or a boolean")
    elif deprecated is True:
        deprecated = f"command {metadata['name']!r} is deprecated"
    metadata["deprecated"] = (deprecated.strip() if isinstance(deprecated, str) else deprecated) or None

    for switch in ("shell", "fancy", "colorful"):
        if not isinstance(metadata[switch], bool | Unset):
            raise TypeError(f"{cls.__typename__} {switch!r} must be a boolean")


class Command(metaclass=IntrospectiveType):
    """
    Node of the command tree.

    Responsibilities
    - Composition: children are attached with add()/command(); sibling names
      and aliases are unique.
    - Flags: own flags live in .flags (insertion-ordered); visible_flags()
      adds the inheritable flags of every ancestor.
    - Invocation: __invoke__ resolves a prompt from this node and dispatches
      to the matched command's action exactly once.

    Lifecycle
    - Built once at startup; the tree must not change while a prompt is being
      resolved.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "deprecated",
        "action",
        "parent",
        "flags",
    )

    def __init__(
            self,
            name,
            action=Unset,
            /,
            *,
            aliases=(),
            descr=Unset,
            deprecated=Unset,
            flags=(),
            shell=Unset,
            fancy=Unset,
            colorful=Unset
    ):
        metadata = {
            "name": name,
            "action": action,
            "aliases": aliases,
            "descr": descr,
            "deprecated": deprecated,
            "shell": shell,
            "fancy": fancy,
            "colorful": colorful,
        }
        _sanitize_metadata(type(self), metadata)

        for key, object in metadata.items():
            setattr(self, "_" + key, object)

        self._parent = None
        self._children = {}
        self._routes = {}
        self._fallback = Unset
        self._flags = FlagSet(flags)

    @property
    def children(self):
        """
        Read-only, insertion-ordered view of the children (name -> command).
        """
        return MappingProxyType(self._children)

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.

        The first element is the root command, the last is the current node.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def shell(self):
        return bool(coalesce(self._shell, self._parent.shell if self._parent else False))

    @property
    def fancy(self):
        return bool(coalesce(self._fancy, self._parent.fancy if self._parent else False))

    @property
    def colorful(self):
        return bool(coalesce(self._colorful, self._parent.colorful if self._parent else False))

    def add(self, *items):
        """
        Attach subcommands and/or declare flags on this command.

        - Command items become children (their parent is set to self).
        - Flag items are added to this command's own FlagSet; descendants see
          them when they are inheritable, whenever they were added.

        Raises
        - DuplicateCommandError: a sibling already uses the name or an alias.
        - DuplicateFlagError: the flag collides with one of this command's flags.
        - ValueError: the command already has a parent, or is an ancestor of self.
        - TypeError: an item is neither a Command nor a Flag.
        """
        for item in items:
            if isinstance(item, Command):
                self._attach(item)
            elif isinstance(item, Flag):
                self._flags.add(item)
            else:
                raise TypeError(f"{type(self).__typename__} can only add commands and flags")
        return self

    def _attach(self, child):
        if child._parent is not None:
            raise ValueError(f"{type(self).__typename__} {child.name!r} already belongs to {child._parent.name!r}")
        if child in self.path:
            raise ValueError(f"{type(self).__typename__} {child.name!r} cannot be attached to its own subtree")

        routes = (child.name, *child.aliases)
        for route in routes:
            if route in self._routes:
                typeof = "subcommand" if self.parent else "command"
                raise DuplicateCommandError(
                    f"{type(self).__typename__} {typeof} name {route!r} is already in use under {self.name!r}"
                )
        for route in routes:
            self._routes[route] = child
        self._children[child.name] = child
        child._parent = self

    def lookup(self, token, /):
        """
        Return the child named (or aliased) `token`, or None.
        """
        return self._routes.get(token)

    def visible_flags(self):
        """
        Flags available to this command: its own, then the inheritable flags of
        every ancestor, nearest first.

        A nearer flag shadows an ancestor flag sharing its long or its short
        name. Non-inheritable ancestor flags are invisible here.
        """
        visible = FlagSet()
        for flag in self._flags:
            visible._overlay(flag)
        for ancestor in reversed(self.path[:-1]):
            for flag in ancestor.flags:
                if flag.inheritable:
                    visible._overlay(flag)
        return visible

    def command(self, source=Unset, /, **kwargs):
        """
        Create a subcommand under this command (see command()).

        Supports @parent.command and @parent.command(name=..., flags=[...]).
        """
        if source is Unset:
            return lambda source: self.command(source, **kwargs)
        child = command(source, **kwargs)
        self.add(child)
        return child

    def fallback(self, fallback, /):
        """
        Register a one-time handler for resolution errors.

        The handler receives the fault instead of it being raised or printed.
        Handlers are looked up from the matched command towards the root, so a
        fallback on the root covers the whole tree.

        Returns the same callable, enabling decorator-style usage: @cmd.fallback
        """
        if not callable(fallback):
            raise TypeError(f"{type(self).__typename__} fallback must be callable")
        if self._fallback is not Unset:
            raise TypeError(f"{type(self).__typename__} fallback cannot be overridden")
        self._fallback = fallback
        return fallback

    def trigger(self, fault, /):
        """
        Surface a fault using this command's presentation switches.

        Errors go to the nearest registered fallback when there is one.
        """
        options = {"shell": self.shell, "fancy": self.fancy, "colorful": self.colorful}
        if isinstance(fault, CommandException):
            for step in reversed(self.path):
                if step._fallback is not Unset:
                    return step._fallback(fault)
        trigger(fault, **{"tool": self} | dict(fault.options) | options)

    def __call__(self, flags, args, /):
        """
        Run the action; a command without an action does nothing.
        """
        if self._action is None:
            return
        return self._action(flags, args)

    def __invoke__(self, prompt=Unset):
        """
        Resolve a prompt from this command and dispatch to the matched action.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.

        Returns
        - the ParseResult, or None when a fault was handled without raising
          (fallback registered).
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")

        try:
            result = resolve(self, tokens)
        except ResolutionError as fault:
            (fault.tool or self).trigger(fault)
            return None

        for warning in result.warnings:
            result.command.trigger(warning)

        result.command(result.flags, result.args)
        return result

    def __repr__(self):
        return f"{type(self).__typename__}({' '.join(step.name for step in self.path)!r})"

    def __rich_repr__(self):
        yield "name", self.name
        yield "aliases", self.aliases
        yield "descr", self.descr
        yield "deprecated", self.deprecated
        yield "flags", tuple(flag.long for flag in self.flags)
        yield "children", tuple(self._children)


def command(source=Unset, /, **kwargs):
    """
    Create a Command from a function, or return a decorator to build it later.

    Invocation modes
    - Direct callback:
        cmd = command(func, name="x", flags=[...])
    - Decorator:
        @command
        def func(flags, args): ...

        @command(name="x", aliases=["y"])
        def func(flags, args): ...

    The function becomes the action; the name defaults to its __name__.
    """
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        name = options.pop("name", getattr(source, "__name__", Unset))
        if name is Unset:
            raise TypeError("command() needs a 'name' for callables without __name__")
        return Command(name, source, **options)

    rename(wrapper, "command")
    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for commands.

    Parameters
    - object: an instance providing __invoke__(prompt) (usually the root).
    - prompt: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.

    Returns
    - whatever __invoke__ returns (a ParseResult for commands).
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Command",
    "command",
    "invoke",
)
