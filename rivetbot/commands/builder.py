"""Fluent builders for command trees.

Example::

    command("bulk-delete", "Delete many messages.")
        .attach(bulk_delete)
        .permissions(Permissions.MANAGE_MESSAGES)
        .option(integer("amount", "Number of messages to delete.").required().min(0).max(100))

Building does not validate; call ``validate()`` (or build the registry) to run
the validator.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Self

from ..types import ChannelType, Permissions
from .args import ArgKind, ArgType
from .handlers import Handler, HandlerFn, HandlerSet, Variant, infer_variants
from .models import ArgDesc, BaseCommand, CommandGroup, CommandNode, CommandOption
from .validation import validate_command

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "ArgBuilder",
    "BaseCommandBuilder",
    "CommandBuilder",
    "GroupBuilder",
    "attachment",
    "boolean",
    "channel",
    "command",
    "group",
    "integer",
    "mention",
    "message",
    "number",
    "role",
    "string",
    "sub",
    "user",
]

EMPTY_DESCRIPTION = "-"


def _description(text: str) -> str:
    return text if text.strip() else EMPTY_DESCRIPTION


class ArgBuilder:
    """Builds a parameter descriptor."""

    def __init__(self, name: str, description: str, arg_type: ArgType) -> None:
        self.name = name
        self.description = _description(description)
        self.kind = ArgKind(arg_type)
        self._required = False

    def required(self, value: bool = True) -> Self:
        """Mark the parameter as required."""
        self._required = value
        return self

    def min(self, value: float) -> Self:
        """Lowest accepted value, or shortest length for strings."""
        if self.kind.type == ArgType.STRING:
            return self.min_length(int(value))
        self._expect(ArgType.NUMBER, ArgType.INTEGER)
        self.kind = replace(self.kind, min_value=value)
        return self

    def max(self, value: float) -> Self:
        """Highest accepted value, or longest length for strings."""
        if self.kind.type == ArgType.STRING:
            return self.max_length(int(value))
        self._expect(ArgType.NUMBER, ArgType.INTEGER)
        self.kind = replace(self.kind, max_value=value)
        return self

    def min_length(self, value: int) -> Self:
        """Shortest accepted string."""
        self._expect(ArgType.STRING)
        self.kind = replace(self.kind, min_length=value)
        return self

    def max_length(self, value: int) -> Self:
        """Longest accepted string."""
        self._expect(ArgType.STRING)
        self.kind = replace(self.kind, max_length=value)
        return self

    def choices(self, *values: Any) -> Self:  # noqa: ANN401
        """Restrict the accepted values.

        Args:
            *values: Either ``(name, value)`` pairs or bare values named after themselves
        """
        self._expect(ArgType.NUMBER, ArgType.INTEGER, ArgType.STRING)
        convert = {ArgType.NUMBER: float, ArgType.INTEGER: int, ArgType.STRING: str}[self.kind.type]
        pairs = []
        for item in values:
            if isinstance(item, tuple):
                name, value = item
            else:
                name, value = str(item), item
            pairs.append((str(name), convert(value)))
        self.kind = replace(self.kind, choices=tuple(pairs))
        return self

    def types(self, *channel_types: ChannelType) -> Self:
        """Restrict the accepted channel types."""
        self._expect(ArgType.CHANNEL)
        self.kind = replace(self.kind, channel_types=frozenset(channel_types))
        return self

    def _expect(self, *arg_types: ArgType) -> None:
        if self.kind.type not in arg_types:
            msg = f"parameter '{self.name}' of type {self.kind.type} does not support this constraint"
            raise TypeError(msg)

    def build(self) -> ArgDesc:
        """Return the descriptor."""
        return ArgDesc(self.name, self.description, self.kind, self._required)


def boolean(name: str, description: str) -> ArgBuilder:
    """A true/false parameter."""
    return ArgBuilder(name, description, ArgType.BOOL)


def number(name: str, description: str) -> ArgBuilder:
    """A floating point parameter."""
    return ArgBuilder(name, description, ArgType.NUMBER)


def integer(name: str, description: str) -> ArgBuilder:
    """An integer parameter."""
    return ArgBuilder(name, description, ArgType.INTEGER)


def string(name: str, description: str) -> ArgBuilder:
    """A text parameter."""
    return ArgBuilder(name, description, ArgType.STRING)


def channel(name: str, description: str) -> ArgBuilder:
    """A channel parameter."""
    return ArgBuilder(name, description, ArgType.CHANNEL)


def message(name: str, description: str) -> ArgBuilder:
    """A message parameter, taken from the replied message on the classic path."""
    return ArgBuilder(name, description, ArgType.MESSAGE)


def attachment(name: str, description: str) -> ArgBuilder:
    """An uploaded file."""
    return ArgBuilder(name, description, ArgType.ATTACHMENT)


def user(name: str, description: str) -> ArgBuilder:
    """A user parameter."""
    return ArgBuilder(name, description, ArgType.USER)


def role(name: str, description: str) -> ArgBuilder:
    """A role parameter."""
    return ArgBuilder(name, description, ArgType.ROLE)


def mention(name: str, description: str) -> ArgBuilder:
    """A user or role parameter."""
    return ArgBuilder(name, description, ArgType.MENTION)


def _build_option(child: Any) -> CommandOption:  # noqa: ANN401
    if isinstance(child, BaseCommandBuilder):
        return child.build().root
    if isinstance(child, (ArgBuilder, CommandBuilder, GroupBuilder)):
        return child.build()
    if isinstance(child, BaseCommand):
        return child.root
    if isinstance(child, (ArgDesc, CommandNode, CommandGroup)):
        return child
    msg = f"cannot use {child!r} as a command option"
    raise TypeError(msg)


class CommandBuilder:
    """Builds a command node."""

    def __init__(self, name: str, description: str) -> None:
        self.name = name
        self.description = _description(description)
        self._handlers: list[Handler] = []
        self._options: list[Any] = []

    def attach(self, handler: HandlerFn, variant: Variant | Iterable[Variant] | None = None) -> Self:
        """Register a handler on this node.

        Args:
            handler: The coroutine function ``(ctx, request) -> Response``
            variant: Variant(s) to attach to, inferred from the request annotation if not set
        """
        if variant is None:
            variants: tuple[Variant, ...] = infer_variants(handler)
        elif isinstance(variant, Variant):
            variants = (variant,)
        else:
            variants = tuple(variant)
        self._handlers.extend(Handler(handler, v) for v in variants)
        return self

    def option(self, child: Any) -> Self:  # noqa: ANN401
        """Add a parameter, a subcommand or a group."""
        self._options.append(child)
        return self

    def build(self) -> CommandNode:
        """Return the immutable node."""
        return CommandNode(
            name=self.name,
            description=self.description,
            handlers=HandlerSet.of(self._handlers),
            options=tuple(_build_option(child) for child in self._options),
        )


class GroupBuilder:
    """Builds a group of subcommands."""

    def __init__(self, name: str, description: str) -> None:
        self.name = name
        self.description = _description(description)
        self._options: list[Any] = []

    def option(self, child: Any) -> Self:  # noqa: ANN401
        """Add a subcommand."""
        self._options.append(child)
        return self

    def build(self) -> CommandGroup:
        """Return the immutable group."""
        return CommandGroup(self.name, self.description, tuple(_build_option(child) for child in self._options))


class BaseCommandBuilder(CommandBuilder):
    """Builds a top-level command with its DM and permission policy."""

    def __init__(self, name: str, description: str) -> None:
        super().__init__(name, description)
        self._dm_enabled = False
        self._permissions: Permissions | None = None

    def dm(self, enabled: bool = True) -> Self:
        """Allow the command in direct messages."""
        self._dm_enabled = enabled
        return self

    def permissions(self, bits: Permissions) -> Self:
        """Require the invoker to hold `bits`."""
        self._permissions = bits
        return self

    def build(self) -> BaseCommand:  # type: ignore[override]
        """Return the immutable base command, without validation."""
        return BaseCommand(super().build(), self._dm_enabled, self._permissions)

    def validate(self) -> BaseCommand:
        """Build and validate, raising CommandValidationError on failure."""
        built = self.build()
        validate_command(built)
        return built


def command(name: str, description: str) -> BaseCommandBuilder:
    """Start a top-level command."""
    return BaseCommandBuilder(name, description)


def sub(name: str, description: str) -> CommandBuilder:
    """Start a subcommand."""
    return CommandBuilder(name, description)


def group(name: str, description: str) -> GroupBuilder:
    """Start a subcommand group."""
    return GroupBuilder(name, description)
