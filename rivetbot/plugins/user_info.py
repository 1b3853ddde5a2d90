"""User information, as a slash command and from the user context menu."""

from __future__ import annotations

from datetime import UTC, datetime
from http import HTTPStatus

from ..commands.builder import command, user
from ..commands.errors import CreateMessage, MissingArgs, Response
from ..commands.requests import SlashRequest, UserRequest
from ..context import Context
from ..dispatcher import invoker_id
from ..http import HTTPError
from ..types import MemberInfo

__all__ = ["COMMANDS", "describe_user", "snowflake_time", "user_info", "user_info_target"]

DISCORD_EPOCH_MS = 1420070400000


def snowflake_time(snowflake: int) -> datetime:
    """Creation time encoded in a Discord id."""
    return datetime.fromtimestamp(((snowflake >> 22) + DISCORD_EPOCH_MS) / 1000, tz=UTC)


async def describe_user(ctx: Context, guild_id: int | None, user_id: int) -> str:
    """Render what is known about a user, with their guild membership if any."""
    info = await ctx.user_from(user_id)
    created = snowflake_time(user_id)
    lines = [
        f"**{info.get('global_name') or info['username']}** (`{info['username']}`)",
        f"ID: `{user_id}`",
        f"Created: <t:{int(created.timestamp())}:F> ({created:%Y-%m-%d %H:%M} UTC)",
    ]
    if info.get("bot"):
        lines.append("Bot: yes")
    if guild_id is not None:
        member: MemberInfo | None
        try:
            member = await ctx.member_from(guild_id, user_id)
        except HTTPError as e:
            if e.status != HTTPStatus.NOT_FOUND:
                raise
            member = None
        if member is not None:
            if member.get("nick"):
                lines.append(f"AKA: {member['nick']}")
            roles = " ".join(f"<@&{role_id}>" for role_id in member.get("roles", []))
            lines.append(f"Roles: {roles or '-'}")
    return "\n".join(lines)


def _guild_id(req: SlashRequest | UserRequest) -> int | None:
    guild_id = req.interaction.get("guild_id")
    return int(guild_id) if guild_id else None


async def user_info(ctx: Context, req: SlashRequest) -> Response:
    """Show information about a user, the invoker by default."""
    if "user" in req.args:
        user_id = req.args.get_user("user").id
    else:
        found = invoker_id(req.interaction)
        if found is None:
            raise MissingArgs("user")
        user_id = found
    return CreateMessage(await describe_user(ctx, _guild_id(req), user_id))


async def user_info_target(ctx: Context, req: UserRequest) -> Response:
    """Show information about the targeted user."""
    return CreateMessage(await describe_user(ctx, _guild_id(req), req.target.id))


COMMANDS = [
    command("user-info", "Get information about a user.").attach(user_info).option(user("user", "User to show information about.")).dm(),
    command("User Info", "Get information about a user.").attach(user_info_target).dm(),
]
