"""Discord REST client on top of aiohttp.

Only the routes the bot needs are exposed. Rate limited requests (HTTP 429)
are retried after the delay advertised by Discord; every other failure raises
``HTTPError``.
"""

from __future__ import annotations

import asyncio
from http import HTTPStatus
from urllib.parse import quote
from typing import TYPE_CHECKING, Any

import aiohttp

from . import VERSION
from .constants import API_BASE, HTTP_RETRIES
from .types import InteractionResponseType, MessageFlags

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable
    from datetime import datetime

    from .types import ChannelInfo, MemberInfo, MessageInfo, RoleInfo, UserInfo

__all__ = ["DiscordHTTP", "HTTPError"]

USER_AGENT = f"DiscordBot (https://github.com/rivetbot/rivetbot, {VERSION})"


class HTTPError(Exception):
    """Discord answered with an error status."""

    def __init__(self, status: int, method: str, path: str, body: Any = None) -> None:  # noqa: ANN401
        super().__init__(f"{method} {path} -> HTTP {status}: {body}")
        self.status = status
        self.method = method
        self.path = path
        self.body = body


class DiscordHTTP:  # pylint: disable=too-many-public-methods
    """Discord REST API client."""

    def __init__(self, token: str, logger: logging.Logger, session: aiohttp.ClientSession | None = None) -> None:
        """Initialize the client.

        Args:
            token: The bot token
            logger: Logger for request tracing
            session: Session to use, one is created on first request otherwise
        """
        self._token = token
        self._session = session
        self.log = logger

    @property
    def session(self) -> aiohttp.ClientSession:
        """The underlying aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bot {self._token}", "User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=30),
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def request(self, method: str, path: str, json: Any = None, params: dict[str, Any] | None = None) -> Any:  # noqa: ANN401
        """Send a request and return the decoded JSON body (None when empty).

        Args:
            method: HTTP verb
            path: Route below the API base URL
            json: Request body
            params: Query string parameters

        Raises:
            HTTPError: on an error status, or when rate limits persist
        """
        body: Any = None
        for attempt in range(HTTP_RETRIES + 1):
            async with self.session.request(method, f"{API_BASE}{path}", json=json, params=params) as response:
                if response.status == HTTPStatus.NO_CONTENT:
                    return None
                if response.content_type == "application/json":
                    body = await response.json()
                else:
                    body = await response.text()
                if response.status == HTTPStatus.TOO_MANY_REQUESTS and attempt < HTTP_RETRIES:
                    delay = float(body.get("retry_after", 1.0)) if isinstance(body, dict) else 1.0
                    self.log.warning("rate limited on %s %s, retrying in %.2fs", method, path, delay)
                    await asyncio.sleep(delay)
                    continue
                if response.status >= HTTPStatus.BAD_REQUEST:
                    raise HTTPError(response.status, method, path, body)
                return body if body != "" else None
        raise HTTPError(HTTPStatus.TOO_MANY_REQUESTS, method, path, body)

    # Messages

    async def create_message(self, channel_id: int, content: str, reply_to: int | None = None) -> MessageInfo:
        """Post a message, optionally as a reply."""
        payload: dict[str, Any] = {"content": content, "allowed_mentions": {"parse": []}}
        if reply_to is not None:
            payload["message_reference"] = {"message_id": str(reply_to), "fail_if_not_exists": False}
        return await self.request("POST", f"/channels/{channel_id}/messages", json=payload)  # type: ignore[no-any-return]

    async def update_message(self, channel_id: int, message_id: int, content: str) -> MessageInfo:
        """Edit the content of a message."""
        return await self.request("PATCH", f"/channels/{channel_id}/messages/{message_id}", json={"content": content})  # type: ignore[no-any-return]

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        """Delete a message."""
        await self.request("DELETE", f"/channels/{channel_id}/messages/{message_id}")

    async def delete_messages(self, channel_id: int, message_ids: Iterable[int]) -> None:
        """Delete 2 to 100 messages at once."""
        await self.request("POST", f"/channels/{channel_id}/messages/bulk-delete", json={"messages": [str(m) for m in message_ids]})

    async def channel_messages(self, channel_id: int, limit: int = 50, before: int | None = None) -> list[MessageInfo]:
        """List messages of a channel, newest first."""
        params: dict[str, Any] = {"limit": limit}
        if before is not None:
            params["before"] = str(before)
        return await self.request("GET", f"/channels/{channel_id}/messages", params=params)  # type: ignore[no-any-return]

    async def message(self, channel_id: int, message_id: int) -> MessageInfo:
        """Fetch one message."""
        return await self.request("GET", f"/channels/{channel_id}/messages/{message_id}")  # type: ignore[no-any-return]

    # Guilds, members, roles, channels, users

    async def create_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        """React to a message.

        Args:
            channel_id: Channel of the message
            message_id: The message
            emoji: A unicode emoji, or ``name:id`` for a custom one
        """
        await self.request("PUT", f"/channels/{channel_id}/messages/{message_id}/reactions/{quote(emoji, safe=':')}/@me")

    async def roles(self, guild_id: int) -> list[RoleInfo]:
        """List the roles of a guild."""
        return await self.request("GET", f"/guilds/{guild_id}/roles")  # type: ignore[no-any-return]

    async def guild_member(self, guild_id: int, user_id: int) -> MemberInfo:
        """Fetch a guild member."""
        return await self.request("GET", f"/guilds/{guild_id}/members/{user_id}")  # type: ignore[no-any-return]

    async def add_member_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        """Give a role to a member."""
        await self.request("PUT", f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}")

    async def remove_member_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        """Take a role from a member."""
        await self.request("DELETE", f"/guilds/{guild_id}/members/{user_id}/roles/{role_id}")

    async def timeout_member(self, guild_id: int, user_id: int, until: datetime | None) -> MemberInfo:
        """Time a member out until `until`, or lift the timeout when None."""
        payload = {"communication_disabled_until": until.isoformat() if until is not None else None}
        return await self.request("PATCH", f"/guilds/{guild_id}/members/{user_id}", json=payload)  # type: ignore[no-any-return]

    async def channel(self, channel_id: int) -> ChannelInfo:
        """Fetch a channel."""
        return await self.request("GET", f"/channels/{channel_id}")  # type: ignore[no-any-return]

    async def user(self, user_id: int) -> UserInfo:
        """Fetch a user."""
        return await self.request("GET", f"/users/{user_id}")  # type: ignore[no-any-return]

    async def current_user(self) -> UserInfo:
        """Fetch the bot user."""
        return await self.request("GET", "/users/@me")  # type: ignore[no-any-return]

    async def current_application(self) -> dict[str, Any]:
        """Fetch the bot application."""
        return await self.request("GET", "/oauth2/applications/@me")  # type: ignore[no-any-return]

    async def leave_guild(self, guild_id: int) -> None:
        """Leave a guild."""
        await self.request("DELETE", f"/users/@me/guilds/{guild_id}")

    async def gateway_url(self) -> str:
        """Return the gateway websocket URL."""
        data = await self.request("GET", "/gateway/bot")
        return str(data["url"])

    async def set_global_commands(self, application_id: int, schemas: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Replace every global application command."""
        return await self.request("PUT", f"/applications/{application_id}/commands", json=schemas)  # type: ignore[no-any-return]

    # Interactions

    async def create_response(self, interaction_id: int, token: str, flags: MessageFlags | int = 0) -> None:
        """Acknowledge an interaction with a deferred response."""
        payload = {"type": int(InteractionResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE), "data": {"flags": int(flags)}}
        await self.request("POST", f"/interactions/{interaction_id}/{token}/callback", json=payload)

    async def update_response(self, application_id: int, token: str, content: str) -> MessageInfo:
        """Set the content of the deferred response."""
        return await self.request("PATCH", f"/webhooks/{application_id}/{token}/messages/@original", json={"content": content})  # type: ignore[no-any-return]

    async def delete_response(self, application_id: int, token: str) -> None:
        """Delete the deferred response."""
        await self.request("DELETE", f"/webhooks/{application_id}/{token}/messages/@original")

    async def create_followup(self, application_id: int, token: str, content: str, flags: MessageFlags | int = 0) -> MessageInfo:
        """Send a followup message to an interaction."""
        payload = {"content": content, "flags": int(flags)}
        return await self.request("POST", f"/webhooks/{application_id}/{token}", json=payload)  # type: ignore[no-any-return]

