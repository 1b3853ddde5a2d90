"""Effective channel permissions of a guild member."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .types import Permissions

if TYPE_CHECKING:
    from .context import Context
    from .types import MessageInfo, OverwriteInfo, RoleInfo

__all__ = ["compute_channel_permissions", "sender_has_permissions"]

ROLE_OVERWRITE = 0
MEMBER_OVERWRITE = 1


def _apply(base: Permissions, allow: int, deny: int) -> Permissions:
    return Permissions((base & ~deny) | allow)


def compute_channel_permissions(
    guild_id: int,
    member_id: int,
    member_roles: Iterable[int],
    roles: Iterable[RoleInfo],
    overwrites: Iterable[OverwriteInfo] = (),
) -> Permissions:
    """Compute the permissions of a member in a channel.

    The ``@everyone`` role shares the guild id. Role permissions are merged,
    administrators get everything, then the channel overwrites apply in order:
    ``@everyone``, the member's roles combined, the member itself.

    Args:
        guild_id: The guild
        member_id: The member's user id
        member_roles: Role ids of the member
        roles: Every role of the guild
        overwrites: Permission overwrites of the channel
    """
    role_perms = {int(role["id"]): int(role["permissions"]) for role in roles}
    member_roles = [int(r) for r in member_roles]

    base = Permissions(role_perms.get(guild_id, 0))
    for role_id in member_roles:
        base |= role_perms.get(role_id, 0)
    if base & Permissions.ADMINISTRATOR:
        return Permissions.all()

    role_overwrites: dict[int, OverwriteInfo] = {}
    member_overwrite = None
    for overwrite in overwrites:
        target = int(overwrite["id"])
        if overwrite["type"] == MEMBER_OVERWRITE:
            if target == member_id:
                member_overwrite = overwrite
        else:
            role_overwrites[target] = overwrite

    everyone = role_overwrites.get(guild_id)
    if everyone is not None:
        base = _apply(base, int(everyone["allow"]), int(everyone["deny"]))

    allow = deny = 0
    for role_id in member_roles:
        overwrite = role_overwrites.get(role_id)
        if overwrite is not None and role_id != guild_id:
            allow |= int(overwrite["allow"])
            deny |= int(overwrite["deny"])
    base = _apply(base, allow, deny)

    if member_overwrite is not None:
        base = _apply(base, int(member_overwrite["allow"]), int(member_overwrite["deny"]))
    return base


async def sender_has_permissions(ctx: Context, message: MessageInfo, required: Permissions) -> bool:
    """Tell if the author of `message` holds `required` in its channel.

    Always true outside of guilds.
    """
    if "guild_id" not in message:
        return True
    guild_id = int(message["guild_id"])
    author_id = int(message["author"]["id"])
    member = message.get("member") or await ctx.member_from(guild_id, author_id)
    roles = await ctx.roles_from(guild_id)
    channel = await ctx.channel_from(int(message["channel_id"]))
    perms = compute_channel_permissions(
        guild_id,
        author_id,
        [int(r) for r in member.get("roles", [])],
        roles,
        channel.get("permission_overwrites", []),
    )
    return (perms & required) == required
