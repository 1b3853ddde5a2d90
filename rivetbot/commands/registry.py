"""The sealed command registry."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .builder import BaseCommandBuilder
from .models import BaseCommand
from .validation import platform_schemas, validate_registry

__all__ = ["Commands", "CommandsBuilder"]


class Commands(Mapping[str, BaseCommand]):
    """Read-only mapping of top-level command names to base commands."""

    def __init__(self, commands: Mapping[str, BaseCommand]) -> None:
        self._commands = dict(commands)

    def __getitem__(self, name: str) -> BaseCommand:
        return self._commands[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return f"Commands({', '.join(self._commands)})"

    def schemas(self) -> list[dict[str, Any]]:
        """Return the registration payload of every application command."""
        return [schema for cmd in self._commands.values() for schema in platform_schemas(cmd)]


class CommandsBuilder:
    """Collects base commands, then validates and seals them."""

    def __init__(self) -> None:
        self._commands: list[BaseCommand] = []

    def bind(self, command: BaseCommand | BaseCommandBuilder) -> CommandsBuilder:
        """Add a command."""
        if isinstance(command, BaseCommandBuilder):
            command = command.build()
        self._commands.append(command)
        return self

    def validate(self) -> None:
        """Run the validator over every bound command.

        Raises:
            CommandValidationError: on the first broken rule
        """
        validate_registry(self._commands)

    def build(self) -> Commands:
        """Validate and return the sealed registry."""
        self.validate()
        return Commands({cmd.name: cmd for cmd in self._commands})
