"""Help rendering for command trees.

Usage lines follow the ``<required>`` / ``[optional]`` convention.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from .handlers import Variant
from .models import BaseCommand, CommandGroup, CommandNode

__all__ = ["iter_leaves", "render_command_help", "render_command_tree", "usage"]


def usage(path: str, node: CommandNode) -> str:
    """Return the usage line of a leaf, e.g. ``alias set <name> <command>``."""
    return " ".join([path, *(arg.usage for arg in node.args)])


def iter_leaves(node: CommandNode, path: str) -> Iterator[tuple[str, CommandNode]]:
    """Yield ``(path, node)`` for every leaf below `node`, groups flattened."""
    if not node.is_branch:
        yield path, node
        return
    for child in node.children:
        if isinstance(child, CommandGroup):
            for sub in child.commands:
                yield from iter_leaves(sub, f"{path} {child.name} {sub.name}")
        else:
            yield from iter_leaves(child, f"{path} {child.name}")


def _surfaces(command: BaseCommand) -> str:
    marks = []
    if command.serves(Variant.CLASSIC):
        marks.append("chat")
    if command.serves(Variant.SLASH):
        marks.append("slash")
    if command.serves(Variant.MESSAGE) or command.serves(Variant.USER):
        marks.append("context menu")
    return ", ".join(marks)


def render_command_tree(commands: Mapping[str, BaseCommand]) -> str:
    """Render every command with its leaves' usage lines.

    Args:
        commands: The command registry
    """
    lines: list[str] = []
    for name in sorted(commands):
        command = commands[name]
        lines.append(f"{name:20s} {command.root.description} ({_surfaces(command)})")
        if command.root.is_branch:
            for path, node in iter_leaves(command.root, name):
                lines.append(f"  {usage(path, node):30s} {node.description}")
        elif command.root.args:
            lines.append(f"  {usage(name, command.root)}")
    return "\n".join(lines)


def render_command_help(commands: Mapping[str, BaseCommand], query: str) -> str:
    """Render the help of one command, possibly a subcommand path like ``alias set``.

    Args:
        commands: The command registry
        query: Space separated command path
    """
    words = query.split()
    command = commands.get(words[0]) if words else None
    if command is None:
        return f"Command `{query}` not found :|"

    current: CommandNode | CommandGroup = command.root
    for word in words[1:]:
        child = current.child(word)
        if child is None:
            return f"Command `{query}` not found :|"
        current = child

    path = " ".join(words)
    lines = [f"{path}: {current.description}"]
    if isinstance(current, CommandGroup):
        lines.append("Subcommands:")
        lines.extend(f"  {usage(f'{path} {sub.name}', sub):30s} {sub.description}" for sub in current.commands)
    elif current.is_branch:
        lines.append("Subcommands:")
        lines.extend(f"  {usage(leaf_path, leaf):30s} {leaf.description}" for leaf_path, leaf in iter_leaves(current, path))
    else:
        lines.append(f"Usage: {usage(path, current)}")
        lines.extend(f"  {arg.usage:20s} {arg.description}" for arg in current.args)
    if command.member_permissions is not None:
        lines.append(f"Requires: {command.member_permissions.name}")
    return "\n".join(lines)
