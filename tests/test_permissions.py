import pytest

from rivetbot.permissions import MEMBER_OVERWRITE, ROLE_OVERWRITE, compute_channel_permissions, sender_has_permissions
from rivetbot.types import Permissions

from .testtools import CHANNEL_ID, GUILD_ID, USER_ID, make_message, set_guild_roles

MOD_ROLE = 10
MUTED_ROLE = 11

SEND = Permissions.SEND_MESSAGES
MANAGE = Permissions.MANAGE_MESSAGES


def roles(everyone=SEND, mod=MANAGE, muted=0):
    return [
        {"id": str(GUILD_ID), "permissions": str(int(everyone))},
        {"id": str(MOD_ROLE), "permissions": str(int(mod))},
        {"id": str(MUTED_ROLE), "permissions": str(int(muted))},
    ]


def overwrite(target, kind, allow=0, deny=0):
    return {"id": str(target), "type": kind, "allow": str(int(allow)), "deny": str(int(deny))}


def compute(member_roles, overwrites=(), guild_roles=None):
    return compute_channel_permissions(GUILD_ID, USER_ID, member_roles, guild_roles or roles(), overwrites)


def test_roles_are_merged():
    assert compute([]) == SEND
    assert compute([MOD_ROLE]) == SEND | MANAGE


def test_administrator_gets_everything():
    perms = compute([MOD_ROLE], guild_roles=roles(mod=Permissions.ADMINISTRATOR))
    assert perms == Permissions.all()
    # overwrites do not apply to administrators
    assert compute([MOD_ROLE], [overwrite(GUILD_ID, ROLE_OVERWRITE, deny=MANAGE)], roles(mod=Permissions.ADMINISTRATOR)) & MANAGE


def test_everyone_overwrite():
    assert not compute([], [overwrite(GUILD_ID, ROLE_OVERWRITE, deny=SEND)]) & SEND


def test_role_overwrites_are_combined():
    overwrites = [
        overwrite(GUILD_ID, ROLE_OVERWRITE, deny=SEND),
        overwrite(MOD_ROLE, ROLE_OVERWRITE, allow=SEND),
        overwrite(MUTED_ROLE, ROLE_OVERWRITE, deny=SEND),
    ]
    # allow wins over deny across the member's roles
    assert compute([MOD_ROLE, MUTED_ROLE], overwrites) & SEND
    assert not compute([MUTED_ROLE], overwrites) & SEND


def test_member_overwrite_applies_last():
    overwrites = [overwrite(MOD_ROLE, ROLE_OVERWRITE, allow=SEND), overwrite(USER_ID, MEMBER_OVERWRITE, deny=SEND)]
    assert not compute([MOD_ROLE], overwrites) & SEND


def test_other_member_overwrite_is_ignored():
    assert compute([], [overwrite(USER_ID + 1, MEMBER_OVERWRITE, deny=SEND)]) & SEND


class TestSenderHasPermissions:
    @pytest.mark.asyncio
    async def test_dm_is_always_allowed(self, ctx, http):
        assert await sender_has_permissions(ctx, make_message("!x", guild_id=None), MANAGE)
        http.roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_from_cache(self, ctx, http):
        set_guild_roles(ctx, everyone=int(SEND), roles={MOD_ROLE: int(MANAGE)})
        assert await sender_has_permissions(ctx, make_message("!x", roles=[MOD_ROLE]), MANAGE)
        assert not await sender_has_permissions(ctx, make_message("!x"), MANAGE)
        http.roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_channel_overwrites(self, ctx):
        set_guild_roles(ctx, roles={MOD_ROLE: int(MANAGE)})
        ctx.cache.channels[CHANNEL_ID]["permission_overwrites"] = [overwrite(MOD_ROLE, ROLE_OVERWRITE, deny=MANAGE)]
        assert not await sender_has_permissions(ctx, make_message("!x", roles=[MOD_ROLE]), MANAGE)

    @pytest.mark.asyncio
    async def test_member_fetched_when_missing(self, ctx, http):
        set_guild_roles(ctx, roles={MOD_ROLE: int(MANAGE)})
        http.guild_member.return_value = {"roles": [str(MOD_ROLE)]}
        message = make_message("!x")
        del message["member"]
        assert await sender_has_permissions(ctx, message, MANAGE)
        http.guild_member.assert_awaited_once_with(GUILD_ID, USER_ID)
