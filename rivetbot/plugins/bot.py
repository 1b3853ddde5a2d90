"""Post or edit messages as the bot."""

from __future__ import annotations

from ..commands.builder import command, message, string, sub
from ..commands.errors import CLEAR, Disabled, MissingArgs, Response, UnexpectedArgs
from ..commands.requests import ClassicRequest, SlashRequest
from ..context import Context
from ..types import MessageInfo, Permissions

__all__ = ["COMMANDS", "bot_edit", "bot_say"]

EMPTY_TEXT = "no u"


def _content(text: str) -> str:
    return text if text.strip() else EMPTY_TEXT


def _guild_channel(req: ClassicRequest | SlashRequest, name: str) -> int:
    """Channel of a guild request, from the message or the interaction."""
    payload = req.message if isinstance(req, ClassicRequest) else req.interaction
    if not payload.get("guild_id"):
        raise Disabled(name)
    channel_id = payload.get("channel_id")
    if channel_id is None:
        raise MissingArgs("channel")
    return int(channel_id)


async def bot_say(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Post a message as the bot in the current channel."""
    channel_id = _guild_channel(req, "bot say")
    created = await ctx.http.create_message(channel_id, _content(req.args.get_string("text")))
    ctx.log.info("Bot message created with id '%s'", created["id"])
    return CLEAR


async def bot_edit(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Replace the content of a message posted by the bot.

    Classic requests name the message by replying to it or by id, slash
    requests by id.
    """
    channel_id = _guild_channel(req, "bot edit")
    target = req.args.get_message("message")
    replied: MessageInfo | None = target.obj  # type: ignore[assignment]
    if replied is None:
        replied = await ctx.http.message(channel_id, target.id)
    if int(replied["author"]["id"]) != ctx.user_id:
        msg = "Replied message is not from this bot"
        raise UnexpectedArgs(msg)

    await ctx.http.update_message(int(replied["channel_id"]), int(replied["id"]), _content(req.args.get_string("text")))
    ctx.log.info("Bot message edited with id '%s'", replied["id"])
    return CLEAR


COMMANDS = [
    command("bot", "Create or edit bot messages.")
    .permissions(Permissions.MANAGE_MESSAGES)
    .option(sub("say", "Post a message by the bot.").attach(bot_say).option(string("text", "What to say.").required()))
    .option(
        sub("edit", "Edit an existing bot message.")
        .attach(bot_edit)
        .option(message("message", "Message to edit.").required())
        .option(string("text", "New content.").required())
    ),
]
