"""Shared handles passed to every handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging

    from .cache import InMemoryCache
    from .commands.registry import Commands
    from .http import DiscordHTTP
    from .storage import ConfigStore
    from .types import ChannelInfo, MemberInfo, RoleInfo, UserInfo

__all__ = ["Context"]


@dataclass
class Context:
    """Everything a handler may need: settings, REST client, cache and commands.

    Attributes:
        config: Settings store
        http: Discord REST client
        cache: Object cache
        commands: The command registry
        application_id: Id of the bot application
        user: The bot user
        log: Logger for command handlers
    """

    config: ConfigStore
    http: DiscordHTTP
    cache: InMemoryCache
    commands: Commands
    application_id: int
    user: UserInfo
    log: logging.Logger

    @property
    def user_id(self) -> int:
        """Id of the bot user."""
        return int(self.user["id"])

    async def roles_from(self, guild_id: int) -> list[RoleInfo]:
        """Roles of a guild, from the cache or Discord."""
        roles = self.cache.roles(guild_id)
        if roles is None:
            roles = await self.http.roles(guild_id)
            self.cache.guild_roles[guild_id] = {int(r["id"]): r for r in roles}
        return roles

    async def channel_from(self, channel_id: int) -> ChannelInfo:
        """A channel, from the cache or Discord."""
        channel = self.cache.channel(channel_id)
        if channel is None:
            channel = await self.http.channel(channel_id)
            self.cache.channels[channel_id] = channel
        return channel

    async def member_from(self, guild_id: int, user_id: int) -> MemberInfo:
        """A guild member, from Discord."""
        return await self.http.guild_member(guild_id, user_id)

    async def user_from(self, user_id: int) -> UserInfo:
        """A user, from the cache or Discord."""
        user = self.cache.user(user_id)
        if user is None:
            user = await self.http.user(user_id)
            self.cache.users[user_id] = user
        return user
