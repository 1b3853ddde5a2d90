"""Static checks of command trees and their export to Discord schemas.

Every failure names exactly one ``ValidationRule``. Checks run depth first in
declaration order and stop at the first failure.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from ..constants import DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH
from ..types import CommandType, OptionType
from .args import OPTION_TYPES, ArgType
from .handlers import Variant
from .models import ArgDesc, BaseCommand, CommandGroup, CommandNode, CommandOption

__all__ = [
    "CommandValidationError",
    "ValidationRule",
    "message_schema",
    "option_schema",
    "platform_schemas",
    "slash_schema",
    "user_schema",
    "validate_command",
    "validate_node",
    "validate_registry",
]

_STRICT_NAME = re.compile(rf"^[-_\w]{{1,{NAME_MAX_LENGTH}}}$")

# a message id travels as text in slash options
MESSAGE_ID_MAX_LENGTH = 32


class ValidationRule(StrEnum):
    """Structural rules of a command tree."""

    IDENTIFIER_SHAPE = "identifier shape"
    DESCRIPTION_BOUNDS = "description bounds"
    PARAMETER_ORDERING = "parameter ordering"
    LOCAL_NAME_UNIQUENESS = "local name uniqueness"
    BRANCH_LEAF_DISCIPLINE = "branch/leaf discipline"
    GROUP_DEPTH = "group depth"
    VARIANT_COMPATIBILITY = "variant compatibility"
    REGISTRY_UNIQUENESS = "registry uniqueness"


class CommandValidationError(Exception):
    """A command tree breaks one rule."""

    def __init__(self, rule: ValidationRule, path: str, detail: str) -> None:
        super().__init__(f"{path}: {rule}: {detail}")
        self.rule = rule
        self.path = path
        self.detail = detail


def _check_name(name: str, path: str, strict: bool) -> None:
    if strict:
        if not _STRICT_NAME.match(name) or name != name.lower():
            detail = f"'{name}' must be 1-{NAME_MAX_LENGTH} lowercase letters, digits, '-' or '_'"
            raise CommandValidationError(ValidationRule.IDENTIFIER_SHAPE, path, detail)
        return
    if not name or len(name) > NAME_MAX_LENGTH or name != name.strip():
        detail = f"'{name}' must be 1-{NAME_MAX_LENGTH} characters without surrounding spaces"
        raise CommandValidationError(ValidationRule.IDENTIFIER_SHAPE, path, detail)


def _check_description(description: str, path: str) -> None:
    if not description.strip() or len(description) > DESCRIPTION_MAX_LENGTH:
        detail = f"description must be 1-{DESCRIPTION_MAX_LENGTH} characters, got {len(description)}"
        raise CommandValidationError(ValidationRule.DESCRIPTION_BOUNDS, path, detail)


def _check_unique(options: Iterable[CommandOption], path: str) -> None:
    seen: set[str] = set()
    for opt in options:
        if opt.name in seen:
            raise CommandValidationError(ValidationRule.LOCAL_NAME_UNIQUENESS, path, f"'{opt.name}' is declared twice")
        seen.add(opt.name)


def _check_ordering(args: Iterable[ArgDesc], path: str) -> None:
    optional_seen = None
    for arg in args:
        if not arg.required:
            optional_seen = arg.name
        elif optional_seen is not None:
            detail = f"required '{arg.name}' follows optional '{optional_seen}'"
            raise CommandValidationError(ValidationRule.PARAMETER_ORDERING, path, detail)


def _validate_group(grp: CommandGroup, path: str) -> None:
    _check_name(grp.name, path, strict=True)
    _check_description(grp.description, path)
    for opt in grp.options:
        if not isinstance(opt, CommandNode):
            kind = "group" if isinstance(opt, CommandGroup) else "argument"
            raise CommandValidationError(ValidationRule.GROUP_DEPTH, path, f"groups only hold commands, found {kind} '{opt.name}'")
    _check_unique(grp.options, path)
    for node in grp.commands:
        validate_node(node, f"{path} {node.name}")


def validate_node(node: CommandNode, path: str | None = None, strict: bool = True) -> None:
    """Validate a command node and everything below it.

    Args:
        node: The node to check
        path: Space separated path used in error messages
        strict: Apply the chat-input naming rules to the node's own name

    Raises:
        CommandValidationError: on the first broken rule
    """
    path = path or node.name
    _check_name(node.name, path, strict)
    _check_description(node.description, path)
    for arg in node.args:
        _check_name(arg.name, f"{path} {arg.name}", strict=True)
        _check_description(arg.description, f"{path} {arg.name}")
    _check_unique(node.options, path)
    _check_ordering(node.args, path)
    if node.is_branch and node.args:
        detail = f"owns subcommands and arguments ({', '.join(a.name for a in node.args)})"
        raise CommandValidationError(ValidationRule.BRANCH_LEAF_DISCIPLINE, path, detail)
    if node.is_branch and len(node.handlers):
        raise CommandValidationError(ValidationRule.BRANCH_LEAF_DISCIPLINE, path, "owns subcommands and handlers")
    for child in node.children:
        child_path = f"{path} {child.name}"
        if isinstance(child, CommandGroup):
            _validate_group(child, child_path)
        else:
            validate_node(child, child_path)


def validate_command(command: BaseCommand) -> None:
    """Validate a base command.

    Message-target and user-target commands take no options and are served by
    the root node only.

    Raises:
        CommandValidationError: on the first broken rule
    """
    root = command.root
    variants = command.variants
    targets = variants & {Variant.MESSAGE, Variant.USER}
    if targets:
        if root.options:
            detail = f"{'/'.join(sorted(targets))} commands cannot have options"
            raise CommandValidationError(ValidationRule.VARIANT_COMPATIBILITY, root.name, detail)
        for node in root.walk():
            if node is not root and node.handlers.variants & targets:
                detail = f"'{node.name}' cannot serve {'/'.join(sorted(targets))} requests"
                raise CommandValidationError(ValidationRule.VARIANT_COMPATIBILITY, root.name, detail)
    strict = bool(variants & {Variant.CLASSIC, Variant.SLASH}) or not targets
    validate_node(root, strict=strict)


def validate_registry(commands: Iterable[BaseCommand]) -> None:
    """Validate every command and the uniqueness of top-level names.

    Raises:
        CommandValidationError: on the first broken rule
    """
    commands = list(commands)
    seen: set[str] = set()
    for cmd in commands:
        if cmd.name in seen:
            raise CommandValidationError(ValidationRule.REGISTRY_UNIQUENESS, cmd.name, f"'{cmd.name}' is registered twice")
        seen.add(cmd.name)
    for cmd in commands:
        validate_command(cmd)


# Schema export


def _arg_schema(arg: ArgDesc) -> dict[str, Any]:
    kind = arg.kind
    schema: dict[str, Any] = {
        "type": int(OPTION_TYPES[kind.type]),
        "name": arg.name,
        "description": arg.description,
        "required": arg.required,
    }
    if kind.type == ArgType.MESSAGE:
        schema["min_length"] = 1
        schema["max_length"] = MESSAGE_ID_MAX_LENGTH
    if kind.min_value is not None:
        schema["min_value"] = kind.min_value
    if kind.max_value is not None:
        schema["max_value"] = kind.max_value
    if kind.min_length is not None:
        schema["min_length"] = kind.min_length
    if kind.max_length is not None:
        schema["max_length"] = kind.max_length
    if kind.choices is not None:
        schema["choices"] = [{"name": name, "value": value} for name, value in kind.choices]
    if kind.channel_types:
        schema["channel_types"] = sorted(int(t) for t in kind.channel_types)
    return schema


def _slash_options(options: Iterable[CommandOption]) -> list[dict[str, Any]]:
    """Schemas of `options`, leaving out subcommands without a slash handler."""
    kept = []
    for opt in options:
        if isinstance(opt, CommandNode) and not opt.serves(Variant.SLASH):
            continue
        if isinstance(opt, CommandGroup) and not any(sub.serves(Variant.SLASH) for sub in opt.commands):
            continue
        kept.append(option_schema(opt))
    return kept


def option_schema(opt: CommandOption) -> dict[str, Any]:
    """Return the Discord option object for a descriptor, subcommand or group."""
    if isinstance(opt, ArgDesc):
        return _arg_schema(opt)
    if isinstance(opt, CommandGroup):
        return {
            "type": int(OptionType.SUB_COMMAND_GROUP),
            "name": opt.name,
            "description": opt.description,
            "options": _slash_options(opt.commands),
        }
    return {
        "type": int(OptionType.SUB_COMMAND),
        "name": opt.name,
        "description": opt.description,
        "options": _slash_options(opt.options),
    }


def _policy(command: BaseCommand) -> dict[str, Any]:
    perms = command.member_permissions
    return {
        "dm_permission": command.dm_enabled,
        "default_member_permissions": str(int(perms)) if perms is not None else None,
    }


def slash_schema(command: BaseCommand) -> dict[str, Any]:
    """Return the chat-input registration payload."""
    return {
        "type": int(CommandType.CHAT_INPUT),
        "name": command.name,
        "description": command.root.description,
        "options": _slash_options(command.root.options),
        **_policy(command),
    }


def message_schema(command: BaseCommand) -> dict[str, Any]:
    """Return the message-target registration payload."""
    return {"type": int(CommandType.MESSAGE), "name": command.name, **_policy(command)}


def user_schema(command: BaseCommand) -> dict[str, Any]:
    """Return the user-target registration payload."""
    return {"type": int(CommandType.USER), "name": command.name, **_policy(command)}


def platform_schemas(command: BaseCommand) -> list[dict[str, Any]]:
    """Return one schema per application surface the command serves.

    Classic handlers have no schema.
    """
    schemas = []
    if command.serves(Variant.SLASH):
        schemas.append(slash_schema(command))
    if command.serves(Variant.MESSAGE):
        schemas.append(message_schema(command))
    if command.serves(Variant.USER):
        schemas.append(user_schema(command))
    return schemas
