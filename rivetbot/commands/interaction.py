"""Application command (interaction) decoding."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..types import CommandType, OptionType
from .args import OPTION_TYPES, ArgType, ArgValue, Args, Ref
from .errors import MissingArgs, NotFound, ParseError, UnexpectedArgs
from .handlers import Variant
from .models import ArgDesc, BaseCommand, CommandGroup, CommandNode

if TYPE_CHECKING:
    from ..types import CommandDataInfo, OptionInfo, ResolvedInfo

__all__ = [
    "InteractionInvocation",
    "decode_interaction",
    "encode_command_data",
]

_VARIANTS = {
    CommandType.CHAT_INPUT: Variant.SLASH,
    CommandType.MESSAGE: Variant.MESSAGE,
    CommandType.USER: Variant.USER,
}

_BRANCH_TYPES = (OptionType.SUB_COMMAND, OptionType.SUB_COMMAND_GROUP)


@dataclass(frozen=True)
class InteractionInvocation:
    """A decoded application command."""

    command: BaseCommand
    variant: Variant
    path: tuple[str, ...]
    node: CommandNode
    args: Args
    target: Ref | None = None


def _convert(desc: ArgDesc, option: OptionInfo, resolved: ResolvedInfo) -> ArgValue:
    if desc.type == ArgType.MESSAGE and option["type"] == OptionType.STRING:
        try:
            value = ArgValue.from_kind(ArgType.MESSAGE, str(option.get("value", "")).strip())
        except ParseError as e:
            msg = f"{desc.name}: {e.detail}"
            raise ParseError(msg) from e
        obj = resolved.get("messages", {}).get(str(value.value.id))  # type: ignore[union-attr]
        return ArgValue(ArgType.MESSAGE, Ref.from_obj(obj)) if obj else value  # type: ignore[arg-type]

    value = ArgValue.from_interaction_option(option, resolved)
    if value.type != desc.type:
        msg = f"{desc.name}: expected a {desc.type}, got a {value.type}"
        raise ParseError(msg)
    try:
        desc.check(value)
    except ParseError as e:
        msg = f"{desc.name}: {e.detail}"
        raise ParseError(msg) from e
    return value


def _collect_args(node: CommandNode, options: list[OptionInfo], resolved: ResolvedInfo) -> Args:
    """Match argument options to the leaf descriptors, in declaration order."""
    by_name = {opt["name"]: opt for opt in options}
    args = Args()
    for desc in node.args:
        option = by_name.pop(desc.name, None)
        if option is None:
            if desc.required:
                raise MissingArgs(f"'{desc.name}'")
            continue
        args.push(desc.name, _convert(desc, option, resolved))
    if by_name:
        msg = f"unknown arguments: {', '.join(by_name)}"
        raise UnexpectedArgs(msg)
    return args


def _target(data: CommandDataInfo, variant: Variant) -> Ref:
    target_id = data.get("target_id")
    if not target_id:
        raise MissingArgs("target")
    bucket = "messages" if variant == Variant.MESSAGE else "users"
    obj = data.get("resolved", {}).get(bucket, {}).get(str(target_id))  # type: ignore[attr-defined]
    return Ref.from_obj(obj) if obj else Ref.from_id(target_id)


def decode_interaction(commands: Mapping[str, BaseCommand], data: CommandDataInfo) -> InteractionInvocation:
    """Resolve the command and arguments of an interaction.

    Args:
        commands: The command registry
        data: The interaction's ``data`` field

    Raises:
        NotFound: unknown command or subcommand, or no handler for the surface
        UnexpectedArgs: the path stops on a group or a branch, or unknown arguments were sent
        MissingArgs: a required argument or the target is absent
        ParseError: a value does not match its descriptor
    """
    name = data["name"]
    base = commands.get(name)
    if base is None:
        raise NotFound(name)
    try:
        variant = _VARIANTS[CommandType(data.get("type", CommandType.CHAT_INPUT))]
    except (KeyError, ValueError) as e:
        msg = f"unsupported command type {data.get('type')}"
        raise UnexpectedArgs(msg) from e

    if variant != Variant.SLASH:
        if not base.root.handlers.has(variant):
            raise NotFound(name)
        return InteractionInvocation(base, variant, (name,), base.root, Args(), _target(data, variant))

    resolved: ResolvedInfo = data.get("resolved") or {}
    options: list[OptionInfo] = list(data.get("options") or [])
    path = [name]
    current: CommandNode | CommandGroup = base.root
    while isinstance(current, CommandGroup) or current.is_branch:
        branch = next((opt for opt in options if opt["type"] in _BRANCH_TYPES), None)
        if branch is None:
            if isinstance(current, CommandGroup):
                msg = f"expected command, found group '{current.name}'"
            else:
                msg = f"expected subcommand of '{' '.join(path)}'"
            raise UnexpectedArgs(msg)
        child = current.child(branch["name"])
        path.append(branch["name"])
        if child is None:
            raise NotFound(" ".join(path))
        current = child
        options = list(branch.get("options") or [])

    if not current.handlers.has(Variant.SLASH):
        raise NotFound(" ".join(path))
    return InteractionInvocation(base, variant, tuple(path), current, _collect_args(current, options, resolved))


def encode_command_data(command: BaseCommand, path: tuple[str, ...] | list[str], args: Args, command_id: str = "0") -> dict[str, Any]:
    """Build the chat-input interaction data Discord would send for an invocation.

    Args:
        command: The invoked base command
        path: Command path, starting with the top-level name
        args: The arguments of the leaf

    Raises:
        KeyError: if the path or an argument does not exist in the tree
    """
    segments: list[tuple[str, OptionType]] = []
    current: CommandNode | CommandGroup = command.root
    for name in path[1:]:
        child = current.child(name)
        if child is None:
            raise KeyError(name)
        segments.append((name, OptionType.SUB_COMMAND_GROUP if isinstance(child, CommandGroup) else OptionType.SUB_COMMAND))
        current = child
    if not isinstance(current, CommandNode):
        raise KeyError(current.name)

    descs = {desc.name: desc for desc in current.args}
    options: list[dict[str, Any]] = []
    for arg in args:
        desc = descs[arg.name]
        raw = arg.value.value
        options.append(
            {
                "name": arg.name,
                "type": int(OPTION_TYPES[desc.type]),
                "value": str(raw.id) if isinstance(raw, Ref) else raw,
            }
        )
    for name, option_type in reversed(segments):
        options = [{"name": name, "type": int(option_type), "options": options}]
    return {"id": command_id, "name": command.name, "type": int(CommandType.CHAT_INPUT), "options": options}
