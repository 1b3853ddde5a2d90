"""In-memory cache of Discord objects, fed by gateway events."""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING, Any

from .constants import MESSAGE_CACHE_SIZE

if TYPE_CHECKING:
    from .types import ChannelInfo, MessageInfo, RoleInfo, UserInfo

__all__ = ["InMemoryCache"]


class InMemoryCache:
    """Cache of guild roles, channels, users and recent messages.

    Updates happen on the event loop before an event is dispatched; reads are
    plain dictionary lookups.
    """

    def __init__(self, message_size: int = MESSAGE_CACHE_SIZE) -> None:
        self.message_size = message_size
        self.current_user: UserInfo | None = None
        self.messages: OrderedDict[int, MessageInfo] = OrderedDict()
        self.users: dict[int, UserInfo] = {}
        self.channels: dict[int, ChannelInfo] = {}
        self.guild_roles: dict[int, dict[int, RoleInfo]] = {}

    def update(self, event: str, data: dict[str, Any]) -> None:  # noqa: C901
        """Apply a dispatch event.

        Args:
            event: The event name (e.g. MESSAGE_CREATE)
            data: The event payload
        """
        if event == "READY":
            self.current_user = data["user"]
            self._put_user(data["user"])
        elif event in ("GUILD_CREATE", "GUILD_UPDATE"):
            guild_id = int(data["id"])
            if "roles" in data:
                self.guild_roles[guild_id] = {int(r["id"]): r for r in data["roles"]}
            for channel in data.get("channels", []):
                self.channels[int(channel["id"])] = {**channel, "guild_id": str(guild_id)}
        elif event == "GUILD_DELETE":
            guild_id = int(data["id"])
            self.guild_roles.pop(guild_id, None)
            for channel_id in [cid for cid, c in self.channels.items() if c.get("guild_id") == str(guild_id)]:
                del self.channels[channel_id]
        elif event in ("GUILD_ROLE_CREATE", "GUILD_ROLE_UPDATE"):
            role = data["role"]
            self.guild_roles.setdefault(int(data["guild_id"]), {})[int(role["id"])] = role
        elif event == "GUILD_ROLE_DELETE":
            self.guild_roles.get(int(data["guild_id"]), {}).pop(int(data["role_id"]), None)
        elif event in ("CHANNEL_CREATE", "CHANNEL_UPDATE"):
            self.channels[int(data["id"])] = data  # type: ignore[assignment]
        elif event == "CHANNEL_DELETE":
            self.channels.pop(int(data["id"]), None)
        elif event == "MESSAGE_CREATE":
            self._put_message(data)  # type: ignore[arg-type]
        elif event == "MESSAGE_UPDATE":
            cached = self.messages.get(int(data["id"]))
            if cached is not None:
                self._put_message({**cached, **data})  # type: ignore[typeddict-item]
        elif event == "MESSAGE_DELETE":
            self.messages.pop(int(data["id"]), None)
        elif event == "MESSAGE_DELETE_BULK":
            for message_id in data.get("ids", []):
                self.messages.pop(int(message_id), None)

    def _put_user(self, user: UserInfo) -> None:
        self.users[int(user["id"])] = user

    def _put_message(self, message: MessageInfo) -> None:
        if "author" in message:
            self._put_user(message["author"])
        message_id = int(message["id"])
        self.messages[message_id] = message
        self.messages.move_to_end(message_id)
        while len(self.messages) > self.message_size:
            self.messages.popitem(last=False)

    def message(self, message_id: int) -> MessageInfo | None:
        """Return a cached message."""
        return self.messages.get(message_id)

    def user(self, user_id: int) -> UserInfo | None:
        """Return a cached user."""
        return self.users.get(user_id)

    def channel(self, channel_id: int) -> ChannelInfo | None:
        """Return a cached channel."""
        return self.channels.get(channel_id)

    def roles(self, guild_id: int) -> list[RoleInfo] | None:
        """Return the cached roles of a guild, None if the guild is unknown."""
        roles = self.guild_roles.get(guild_id)
        return list(roles.values()) if roles is not None else None
