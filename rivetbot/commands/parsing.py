"""Classic (chat prefix) command parsing.

Turns ``!bot say "hello there"`` into the ``bot say`` leaf node and its typed
arguments. Parsing is synchronous and touches no platform state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import DELIMITERS
from .args import ArgType, ArgValue, Args, Ref
from .errors import MissingArgs, NotFound, NotPrefixed, ParseError, UnexpectedArgs
from .handlers import Variant
from .models import ArgDesc, BaseCommand, CommandGroup, CommandNode

if TYPE_CHECKING:
    from ..types import MessageInfo

__all__ = [
    "ClassicInvocation",
    "format_invocation",
    "maybe_quoted_arg",
    "parse_args",
    "parse_classic",
    "split_once_whitespace",
    "unprefix",
]


@dataclass(frozen=True)
class ClassicInvocation:
    """A parsed chat command."""

    command: BaseCommand
    path: tuple[str, ...]
    node: CommandNode
    args: Args


def unprefix(prefix: str, content: str) -> str:
    """Return `content` without `prefix`.

    Raises:
        NotPrefixed: if the content does not start with the prefix
    """
    if not content.startswith(prefix):
        raise NotPrefixed
    return content[len(prefix) :]


def split_once_whitespace(text: str) -> tuple[str, str]:
    """Split the first whitespace delimited token from `text`.

    Returns:
        The token and the rest, both without surrounding whitespace
    """
    parts = text.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


def maybe_quoted_arg(text: str) -> tuple[str, str]:
    """Split the first argument from `text`, honouring quotes.

    A token starting with one of the delimiters spans up to the next
    occurrence of the same character. There is no escape sequence.

    Raises:
        ParseError: if a quote is not terminated
    """
    text = text.lstrip()
    if not text or text[0] not in DELIMITERS:
        return split_once_whitespace(text)
    quote = text[0]
    end = text.find(quote, 1)
    if end == -1:
        msg = f"unterminated quote {quote}{text[1:]}"
        raise ParseError(msg)
    return text[1:end], text[end + 1 :].strip()


def _take(text: str, greedy: bool) -> tuple[str, str]:
    """Take the next argument, or all the remaining text when `greedy`."""
    if not greedy:
        return maybe_quoted_arg(text)
    remaining = text.strip()
    token, after = maybe_quoted_arg(remaining)
    if not after:
        return token, ""
    return remaining, ""


def _special(desc: ArgDesc, message: MessageInfo | None, attachment_index: int) -> ArgValue | None:
    """Value drawn from the origin message instead of the text, if any."""
    if message is None:
        return None
    if desc.type == ArgType.MESSAGE:
        referenced = message.get("referenced_message")
        if referenced:
            return ArgValue(ArgType.MESSAGE, Ref.from_obj(referenced))  # type: ignore[arg-type]
        reference_id = message.get("message_reference", {}).get("message_id")
        if reference_id:
            return ArgValue(ArgType.MESSAGE, Ref.from_id(reference_id))
        return None
    if desc.type == ArgType.ATTACHMENT:
        attachments = message.get("attachments") or []
        if attachment_index < len(attachments):
            return ArgValue(ArgType.ATTACHMENT, Ref.from_obj(attachments[attachment_index]))  # type: ignore[arg-type]
    return None


def _convert(desc: ArgDesc, token: str) -> ArgValue:
    try:
        value = ArgValue.from_kind(desc.kind, token)
        desc.check(value)
    except ParseError as e:
        msg = f"{desc.name}: {e.detail}"
        raise ParseError(msg) from e
    return value


def parse_args(descs: tuple[ArgDesc, ...], text: str, message: MessageInfo | None = None) -> Args:
    """Parse `text` against a leaf's parameter descriptors.

    Required parameters come first and must all be satisfied. An optional
    parameter failing to convert is recorded in ``Args.skipped`` and its token
    is offered to the next optional one. When the last parameter is a string
    it receives all the remaining text.

    Args:
        descs: The parameter descriptors, in declaration order
        text: The text following the command path
        message: The origin message, source of special arguments

    Raises:
        MissingArgs: if a required parameter is not satisfied
        ParseError: if a value does not convert or a quote is unterminated
        UnexpectedArgs: if text remains once every parameter is consumed
    """
    args = Args()
    rest = text.strip()
    attachment_index = 0
    for index, desc in enumerate(descs):
        special = _special(desc, message, attachment_index)
        if special is not None:
            if desc.type == ArgType.ATTACHMENT:
                attachment_index += 1
            args.push(desc.name, special)
            continue
        if desc.type == ArgType.ATTACHMENT:
            if desc.required:
                msg = f"'{desc.name}' needs an attached file"
                raise MissingArgs(msg)
            continue
        if not rest:
            if desc.required:
                raise MissingArgs(f"'{desc.name}'")
            continue

        greedy = index == len(descs) - 1 and desc.type == ArgType.STRING
        token, remainder = _take(rest, greedy)
        if desc.required:
            args.push(desc.name, _convert(desc, token))
        else:
            try:
                args.push(desc.name, _convert(desc, token))
            except ParseError as e:
                args.skipped.append((desc.name, e))
                continue
        rest = remainder

    if rest:
        msg = f"did not expect '{rest}'"
        raise UnexpectedArgs(msg)
    return args


def _lookup(node: CommandNode, name: str) -> CommandNode | CommandGroup | None:
    """Find a child by name; commands of groups are reachable directly too."""
    found = node.child(name)
    if found is not None:
        return found
    for child in node.children:
        if isinstance(child, CommandGroup):
            sub = child.child(name)
            if sub is not None:
                return sub
    return None


def parse_classic(
    content: str,
    prefix: str,
    commands: Mapping[str, BaseCommand],
    message: MessageInfo | None = None,
    aliases: Mapping[str, str] | None = None,
) -> ClassicInvocation:
    """Parse a chat line into a command invocation.

    Args:
        content: The message content
        prefix: The classic prefix in effect
        commands: The command registry
        message: The origin message, source of special arguments
        aliases: Guild aliases, mapping a word to a command line

    Raises:
        NotPrefixed: the line is not a command
        NotFound: the command does not exist or has no classic handler
        UnexpectedArgs: the path stops on a group or a branch, or text is left over
        MissingArgs: a required parameter is not satisfied
        ParseError: a value does not convert
    """
    body = unprefix(prefix, content)
    name, rest = split_once_whitespace(body)
    if not name:
        raise NotFound
    if name not in commands and aliases and name in aliases:
        name, alias_rest = split_once_whitespace(aliases[name])
        rest = f"{alias_rest} {rest}".strip()
    base = commands.get(name)
    if base is None:
        raise NotFound(name)

    path = [name]
    current: CommandNode | CommandGroup = base.root
    while True:
        if isinstance(current, CommandNode) and not current.is_branch:
            break
        token, after = split_once_whitespace(rest)
        if isinstance(current, CommandGroup):
            child: CommandNode | CommandGroup | None = current.child(token) if token else None
            if child is None:
                msg = f"expected command, found group '{current.name}'"
                raise UnexpectedArgs(msg)
        else:
            child = _lookup(current, token) if token else None
            if child is None:
                msg = f"expected subcommand of '{' '.join(path)}'"
                raise UnexpectedArgs(msg)
        path.append(child.name)
        current = child
        rest = after

    node = current
    if not node.handlers.has(Variant.CLASSIC):
        raise NotFound(" ".join(path))
    return ClassicInvocation(base, tuple(path), node, parse_args(node.args, rest, message))


def _quote(token: str) -> str:
    if token and not any(c.isspace() for c in token) and token[0] not in DELIMITERS:
        return token
    for quote in DELIMITERS:
        if quote not in token:
            return f"{quote}{token}{quote}"
    msg = f"cannot quote {token!r}"
    raise ValueError(msg)


def format_invocation(prefix: str, path: tuple[str, ...] | list[str], args: Args) -> str:
    """Render an invocation back into a chat line.

    Reference values render as bare identifiers, text is quoted when needed.
    """
    tokens = list(path)
    for arg in args:
        raw = arg.value.value
        if isinstance(raw, Ref):
            tokens.append(str(raw.id))
        elif isinstance(raw, bool):
            tokens.append("true" if raw else "false")
        elif isinstance(raw, float):
            tokens.append(repr(raw))
        elif isinstance(raw, int):
            tokens.append(str(raw))
        else:
            tokens.append(_quote(raw))
    return prefix + " ".join(tokens)
