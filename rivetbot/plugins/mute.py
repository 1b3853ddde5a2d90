"""Time members out.

A timed out member cannot send messages, react or join voice channels until
the timeout ends.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from ..commands.builder import command, integer, user
from ..commands.errors import CLEAR, Disabled, Response
from ..commands.requests import ClassicRequest, SlashRequest, UserRequest
from ..context import Context
from ..types import Permissions

__all__ = ["COMMANDS", "DEFAULT_MUTE_SECS", "MAX_MUTE_SECS", "mute", "mute_member", "mute_target"]

DEFAULT_MUTE_SECS = 60
MAX_MUTE_SECS = 60 * 60 * 24 * 28


async def mute_member(ctx: Context, guild_id: int, user_id: int, seconds: int) -> datetime:
    """Time `user_id` out for `seconds`.

    Returns:
        When the timeout ends
    """
    until = datetime.now(UTC) + timedelta(seconds=seconds)
    await ctx.http.timeout_member(guild_id, user_id, until)
    ctx.log.info("guild %s: user %s muted until %s", guild_id, user_id, until)
    return until


async def mute(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Mute a member, for a minute by default."""
    payload = req.message if isinstance(req, ClassicRequest) else req.interaction
    if not payload.get("guild_id"):
        raise Disabled("mute")
    seconds = req.args.get_integer("duration") if "duration" in req.args else DEFAULT_MUTE_SECS
    await mute_member(ctx, int(payload["guild_id"]), req.args.get_user("user").id, seconds)
    return CLEAR


async def mute_target(ctx: Context, req: UserRequest) -> Response:
    """Mute the targeted member for a minute."""
    guild_id = req.interaction.get("guild_id")
    if not guild_id:
        raise Disabled("Mute")
    await mute_member(ctx, int(guild_id), req.target.id, DEFAULT_MUTE_SECS)
    return CLEAR


COMMANDS = [
    command("mute", "Mute a member.")
    .permissions(Permissions.MODERATE_MEMBERS)
    .attach(mute)
    .option(user("user", "Member to mute.").required())
    .option(integer("duration", "Duration in seconds, one minute by default.").min(1).max(MAX_MUTE_SECS)),
    command("Mute", "Mute a member for a minute.").permissions(Permissions.MODERATE_MEMBERS).attach(mute_target),
]
