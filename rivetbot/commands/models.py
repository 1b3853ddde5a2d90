"""Declarative command tree.

A ``BaseCommand`` wraps a root ``CommandNode``; nodes own options which are
parameter descriptors (``ArgDesc``), subcommands (``CommandNode``) or groups
(``CommandGroup``). Values are built once by the builders and never mutated.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from ..types import Permissions
from .args import ArgKind, ArgType, ArgValue
from .handlers import HandlerSet, Variant

__all__ = [
    "ArgDesc",
    "BaseCommand",
    "CommandGroup",
    "CommandNode",
    "CommandOption",
]


@dataclass(frozen=True)
class ArgDesc:
    """A parameter descriptor."""

    name: str
    description: str
    kind: ArgKind
    required: bool = False

    @property
    def type(self) -> ArgType:
        """The kind of value this parameter takes."""
        return self.kind.type

    def check(self, value: ArgValue) -> None:
        """Check `value` against the declared bounds, raising ParseError."""
        self.kind.check(value)

    @property
    def usage(self) -> str:
        """Usage placeholder, ``<name>`` when required, ``[name]`` otherwise."""
        return f"<{self.name}>" if self.required else f"[{self.name}]"


@dataclass(frozen=True, eq=False)
class CommandNode:
    """A command, either a leaf taking arguments or a branch owning subcommands."""

    name: str
    description: str
    handlers: HandlerSet
    options: tuple[CommandOption, ...] = ()

    @property
    def args(self) -> tuple[ArgDesc, ...]:
        """Parameter descriptors, in declaration order."""
        return tuple(opt for opt in self.options if isinstance(opt, ArgDesc))

    @property
    def children(self) -> tuple[CommandNode | CommandGroup, ...]:
        """Subcommands and groups."""
        return tuple(opt for opt in self.options if not isinstance(opt, ArgDesc))

    @property
    def is_branch(self) -> bool:
        """True when the node owns subcommands or groups."""
        return any(not isinstance(opt, ArgDesc) for opt in self.options)

    def child(self, name: str) -> CommandNode | CommandGroup | None:
        """Return the subcommand or group called `name`."""
        for opt in self.children:
            if opt.name == name:
                return opt
        return None

    def walk(self) -> Iterator[CommandNode]:
        """Iterate over this node and every command below it."""
        yield self
        for opt in self.children:
            if isinstance(opt, CommandGroup):
                for sub in opt.commands:
                    yield from sub.walk()
            else:
                yield from opt.walk()

    def serves(self, variant: Variant) -> bool:
        """Tell if any node of the tree has a handler for `variant`."""
        return any(node.handlers.has(variant) for node in self.walk())


@dataclass(frozen=True, eq=False)
class CommandGroup:
    """A group of subcommands."""

    name: str
    description: str
    options: tuple[CommandOption, ...] = ()

    @property
    def commands(self) -> tuple[CommandNode, ...]:
        """The grouped commands."""
        return tuple(opt for opt in self.options if isinstance(opt, CommandNode))

    def child(self, name: str) -> CommandNode | None:
        """Return the grouped command called `name`."""
        for opt in self.commands:
            if opt.name == name:
                return opt
        return None


CommandOption = ArgDesc | CommandNode | CommandGroup


@dataclass(frozen=True, eq=False)
class BaseCommand:
    """The root of a command tree with its cross-surface policy.

    Attributes:
        root: The top-level command node
        dm_enabled: Whether the command may run outside of guilds
        member_permissions: Permissions the invoker must hold
    """

    root: CommandNode
    dm_enabled: bool = False
    member_permissions: Permissions | None = None

    @property
    def name(self) -> str:
        """The top-level command name."""
        return self.root.name

    @property
    def variants(self) -> frozenset[Variant]:
        """Every variant served anywhere in the tree."""
        found: set[Variant] = set()
        for node in self.root.walk():
            found |= node.handlers.variants
        return frozenset(found)

    def serves(self, variant: Variant) -> bool:
        """Tell if the tree has a handler for `variant`."""
        return self.root.serves(variant)
