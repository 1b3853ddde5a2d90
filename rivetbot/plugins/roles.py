"""Reaction-role mappings.

A mapping ties an emoji on a message to a role: members reacting with the
emoji get the role, removing the reaction takes it back. The bot reacts first
so members only have to click.
"""

from __future__ import annotations

import re
from http import HTTPStatus

from ..commands.builder import command, message, role, string, sub
from ..commands.errors import NONE, CreateMessage, Disabled, ParseError, Response, UnknownResource
from ..commands.requests import ClassicRequest, SlashRequest
from ..context import Context
from ..http import HTTPError
from ..storage import GuildSettings, reaction_roles_key
from ..types import MessageInfo, Permissions
from .meta import fit_message

__all__ = ["COMMANDS", "parse_emoji", "roles_add", "roles_list", "roles_remove"]

CUSTOM_EMOJI = re.compile(r"<a?:(\w+):(\d+)>")
EMOJI_KEY = re.compile(r"\w+:\d+")


def parse_emoji(text: str) -> str:
    """Return the mapping key of an emoji typed in a message.

    Custom emojis (``<:name:id>``) become ``name:id``, unicode ones are kept.
    Keys already in the ``name:id`` form are accepted as is.

    Raises:
        ParseError: if `text` is not a single emoji
    """
    text = text.strip()
    found = CUSTOM_EMOJI.fullmatch(text)
    if found:
        return f"{found[1]}:{found[2]}"
    if EMOJI_KEY.fullmatch(text):
        return text
    if not text or text.isascii() or any(c.isspace() for c in text):
        raise ParseError(f"'{text}' is not an emoji")
    return text


def _guild_channel(req: ClassicRequest | SlashRequest) -> tuple[int, int]:
    payload = req.message if isinstance(req, ClassicRequest) else req.interaction
    if not payload.get("guild_id"):
        raise Disabled("roles")
    return int(payload["guild_id"]), int(payload["channel_id"])


async def _target(ctx: Context, req: ClassicRequest | SlashRequest, channel_id: int) -> MessageInfo:
    ref = req.args.get_message("message")
    if ref.obj is not None:
        return ref.obj  # type: ignore[return-value]
    try:
        return await ctx.http.message(channel_id, ref.id)
    except HTTPError as e:
        if e.status == HTTPStatus.NOT_FOUND:
            raise UnknownResource(f"message {ref.id}") from e
        raise


async def roles_add(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Map an emoji on a message to a role, reacting with it."""
    guild_id, channel_id = _guild_channel(req)
    target = await _target(ctx, req, channel_id)
    emoji = parse_emoji(req.args.get_string("emoji"))
    role_id = req.args.get_role("role").id
    target_channel = int(target.get("channel_id", channel_id))
    key = reaction_roles_key(target_channel, int(target["id"]))

    await ctx.http.create_reaction(target_channel, int(target["id"]), emoji)

    def _add(settings: GuildSettings) -> None:
        settings.reaction_roles.setdefault(key, {})[emoji] = role_id

    await ctx.config.update_guild(guild_id, _add)
    ctx.log.info("guild %s: %s on message %s gives role %s", guild_id, emoji, target["id"], role_id)
    return NONE


async def roles_remove(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Drop the role mapped to an emoji on a message."""
    guild_id, channel_id = _guild_channel(req)
    ref = req.args.get_message("message")
    target_channel = int(ref.obj.get("channel_id", channel_id)) if ref.obj is not None else channel_id
    key = reaction_roles_key(target_channel, ref.id)
    emoji = parse_emoji(req.args.get_string("emoji"))

    def _remove(settings: GuildSettings) -> bool:
        mapping = settings.reaction_roles.get(key, {})
        if mapping.pop(emoji, None) is None:
            return False
        if not mapping:
            del settings.reaction_roles[key]
        return True

    if not await ctx.config.update_guild(guild_id, _remove):
        raise UnknownResource(f"reaction role {emoji} on message {ref.id}")
    return CreateMessage(f"Removed {emoji} from message {ref.id}.")


async def roles_list(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """List the reaction-role mappings of the guild."""
    guild_id, _ = _guild_channel(req)
    settings = await ctx.config.guild_settings(guild_id)
    if not settings.reaction_roles:
        return CreateMessage("No reaction roles defined.")
    lines = []
    for key, mapping in sorted(settings.reaction_roles.items()):
        channel_id, message_id = key.split(".", 1)
        pairs = ", ".join(f"{emoji} -> <@&{role_id}>" for emoji, role_id in sorted(mapping.items()))
        lines.append(f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}: {pairs}")
    return CreateMessage(fit_message("Reaction roles:", lines))


COMMANDS = [
    command("roles", "Manage reaction roles.")
    .permissions(Permissions.MANAGE_ROLES)
    .option(sub("list", "List reaction roles.").attach(roles_list))
    .option(
        sub("add", "Give a role to members reacting with an emoji.")
        .attach(roles_add)
        .option(message("message", "Message to react on.").required())
        .option(string("emoji", "Emoji to react with.").required())
        .option(role("role", "Role to give.").required())
    )
    .option(
        sub("remove", "Stop giving a role for an emoji.")
        .attach(roles_remove)
        .option(message("message", "Message reacted on.").required())
        .option(string("emoji", "Emoji to forget.").required())
    ),
]
