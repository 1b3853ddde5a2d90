"""Quote a message from its context menu."""

from __future__ import annotations

from ..commands.builder import command
from ..commands.errors import CreateMessage, MissingArgs, Response
from ..commands.requests import MessageRequest
from ..context import Context
from ..types import MessageInfo

__all__ = ["COMMANDS", "format_quote", "quote"]


def format_quote(text: str, author: str) -> str:
    """Format `text` as a block quote signed by `author`."""
    return f">>> {text}\n\t*- {author}*"


def display_name(message: MessageInfo) -> str:
    """Name shown for the author of `message`."""
    author = message["author"]
    nick = (message.get("member") or {}).get("nick")
    return nick or author.get("global_name") or author["username"]


async def quote(ctx: Context, req: MessageRequest) -> Response:
    """Repost the target message as a quote."""
    message: MessageInfo | None = req.target.obj  # type: ignore[assignment]
    if message is None:
        message = await ctx.http.message(int(req.interaction["channel_id"]), req.target.id)
    text = message.get("content", "").strip()
    if not text:
        msg = "the message has no text to quote"
        raise MissingArgs(msg)
    return CreateMessage(format_quote(text, display_name(message)))


COMMANDS = [command("Quote", "Quote a message.").attach(quote)]
