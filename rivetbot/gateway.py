"""Discord gateway consumer on top of aiohttp websockets.

``Gateway.events`` yields ``(event name, payload)`` for every dispatch event,
keeping the connection alive with heartbeats and transparently resuming or
re-identifying when Discord asks for it.
"""

from __future__ import annotations

import asyncio
import itertools
import random
import sys
from collections.abc import AsyncIterator
from enum import IntEnum, IntFlag
from typing import TYPE_CHECKING, Any

import aiohttp

from .constants import GATEWAY_RETRIES, GATEWAY_VERSION
from .types import BotError

if TYPE_CHECKING:
    import logging

    from .http import DiscordHTTP

__all__ = ["DEFAULT_INTENTS", "Gateway", "Intents", "Opcode"]

# close codes after which reconnecting is pointless
FATAL_CLOSE_CODES = frozenset({4004, 4010, 4011, 4012, 4013, 4014})


class Opcode(IntEnum):
    """Gateway opcodes."""

    DISPATCH = 0
    HEARTBEAT = 1
    IDENTIFY = 2
    RESUME = 6
    RECONNECT = 7
    INVALID_SESSION = 9
    HELLO = 10
    HEARTBEAT_ACK = 11


class Intents(IntFlag):
    """Gateway intents."""

    GUILDS = 1 << 0
    GUILD_MEMBERS = 1 << 1
    GUILD_VOICE_STATES = 1 << 7
    GUILD_MESSAGES = 1 << 9
    GUILD_MESSAGE_REACTIONS = 1 << 10
    DIRECT_MESSAGES = 1 << 12
    DIRECT_MESSAGE_REACTIONS = 1 << 13
    MESSAGE_CONTENT = 1 << 15


DEFAULT_INTENTS = (
    Intents.GUILDS
    | Intents.GUILD_MEMBERS
    | Intents.GUILD_VOICE_STATES
    | Intents.GUILD_MESSAGES
    | Intents.GUILD_MESSAGE_REACTIONS
    | Intents.DIRECT_MESSAGES
    | Intents.DIRECT_MESSAGE_REACTIONS
    | Intents.MESSAGE_CONTENT
)


class Reconnect(Exception):  # noqa: N818
    """The current connection must be replaced."""


class Gateway:
    """A single-shard gateway connection."""

    def __init__(self, http: DiscordHTTP, token: str, logger: logging.Logger, intents: Intents = DEFAULT_INTENTS) -> None:
        self.http = http
        self.log = logger
        self._token = token
        self.intents = intents
        self.ws: aiohttp.ClientWebSocketResponse | None = None
        self.sequence: int | None = None
        self.session_id: str | None = None
        self.resume_url: str | None = None
        self.stopped = False
        self._acked = True
        self._heartbeat_task: asyncio.Task | None = None

    async def connect_with_retry(self, max_retry: int = GATEWAY_RETRIES) -> None:
        """Open the websocket, retrying if it fails.

        Raises:
            BotError: when the retry count is exhausted
        """
        err_count = itertools.count()
        while True:
            attempt = next(err_count)
            try:
                await self._connect()
            except (OSError, aiohttp.ClientError, asyncio.TimeoutError) as e:  # noqa: PERF203
                if attempt >= max_retry:
                    self.log.critical("Cannot reach the Discord gateway: %s", e)
                    raise BotError from e
                self.log.warning("gateway connection failed (%s), retrying...", e)
                await asyncio.sleep(min(2**attempt, 60))
            else:
                return

    async def _connect(self) -> None:
        url = self.resume_url if self.session_id and self.resume_url else await self.http.gateway_url()
        self.ws = await self.http.session.ws_connect(f"{url}/?v={GATEWAY_VERSION}&encoding=json", max_msg_size=0)

    async def send(self, op: Opcode, data: Any) -> None:  # noqa: ANN401
        """Send a gateway payload."""
        if self.ws is None or self.ws.closed:
            return
        await self.ws.send_json({"op": int(op), "d": data})

    async def _identify(self) -> None:
        if self.session_id:
            self.log.info("resuming session %s", self.session_id)
            await self.send(Opcode.RESUME, {"token": self._token, "session_id": self.session_id, "seq": self.sequence})
            return
        await self.send(
            Opcode.IDENTIFY,
            {
                "token": self._token,
                "intents": int(self.intents),
                "properties": {"os": sys.platform, "browser": "rivetbot", "device": "rivetbot"},
            },
        )

    async def _heartbeat(self, interval: float) -> None:
        await asyncio.sleep(interval * random.random())  # noqa: S311
        while self.ws is not None and not self.ws.closed:
            if not self._acked:
                self.log.warning("no heartbeat acknowledgement, reconnecting")
                await self.ws.close(code=4000)
                return
            self._acked = False
            await self.send(Opcode.HEARTBEAT, self.sequence)
            await asyncio.sleep(interval)

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None

    async def _session_events(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """Yield dispatch events of the current websocket until it must be replaced."""
        assert self.ws is not None
        async for msg in self.ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                break
            payload = msg.json()
            op = payload.get("op")
            data = payload.get("d")
            if op == Opcode.DISPATCH:
                self.sequence = payload.get("s", self.sequence)
                event = payload.get("t") or ""
                if event == "READY":
                    self.session_id = data["session_id"]
                    self.resume_url = data.get("resume_gateway_url")
                yield event, data
            elif op == Opcode.HELLO:
                self._acked = True
                self._stop_heartbeat()
                self._heartbeat_task = asyncio.create_task(self._heartbeat(data["heartbeat_interval"] / 1000))
                await self._identify()
            elif op == Opcode.HEARTBEAT:
                await self.send(Opcode.HEARTBEAT, self.sequence)
            elif op == Opcode.HEARTBEAT_ACK:
                self._acked = True
            elif op == Opcode.RECONNECT:
                raise Reconnect("requested by Discord")
            elif op == Opcode.INVALID_SESSION:
                if not data:
                    self.session_id = None
                    self.sequence = None
                await asyncio.sleep(1 + random.random() * 4)  # noqa: S311
                raise Reconnect("invalid session")

        close_code = self.ws.close_code
        if close_code in FATAL_CLOSE_CODES:
            self.log.critical("gateway closed the connection with code %s", close_code)
            raise BotError
        raise Reconnect(f"connection closed ({close_code})")

    async def events(self) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """Yield dispatch events until ``close`` is called.

        Raises:
            BotError: on a fatal close code or when reconnecting keeps failing
        """
        if self.ws is None:
            await self.connect_with_retry()
        while not self.stopped:
            try:
                async for event in self._session_events():
                    yield event
            except (Reconnect, aiohttp.ClientError, asyncio.TimeoutError) as e:
                if self.stopped:
                    break
                self.log.info("gateway reconnecting: %s", e)
            self._stop_heartbeat()
            if self.ws is not None and not self.ws.closed:
                await self.ws.close()
            if not self.stopped:
                await self.connect_with_retry()

    async def close(self) -> None:
        """Stop reading events and close the websocket."""
        self.stopped = True
        self._stop_heartbeat()
        if self.ws is not None and not self.ws.closed:
            await self.ws.close()
