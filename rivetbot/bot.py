"""RivetBot manager - the event loop of the bot."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import TYPE_CHECKING, Any

import aiohttp

from .cache import InMemoryCache
from .constants import SHUTDOWN_TIMEOUT
from .context import Context
from .dispatcher import Dispatcher
from .gateway import Gateway
from .http import DiscordHTTP, HTTPError
from .logging_setup import get_logger
from .storage import ConfigStore
from .types import BotError

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from .commands.registry import Commands
    from .config import Configuration

__all__ = ["RivetBot", "emoji_key", "run_bot"]


def emoji_key(emoji: dict[str, Any]) -> str:
    """Key of an emoji in reaction-role mappings: ``name:id`` for custom ones."""
    if emoji.get("id"):
        return f"{emoji.get('name') or ''}:{emoji['id']}"
    return str(emoji.get("name") or "")


class RivetBot:
    """Main bot object.

    Owns the REST client, the gateway and the cache, and turns every gateway
    event into a task. The cache is always updated before the event handlers run.
    """

    stopped = False
    ctx: Context
    dispatcher: Dispatcher

    def __init__(self, token: str, settings: Configuration, commands: Commands, http: DiscordHTTP | None = None) -> None:
        self.log = get_logger()
        self.settings = settings
        self.commands = commands
        self.http = http or DiscordHTTP(token, get_logger("http"))
        self.gateway = Gateway(self.http, token, get_logger("gateway"))
        self.cache = InMemoryCache()
        self.config = ConfigStore(settings, get_logger("config"))
        self.tasks: set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Fetch the bot identity and build the shared context.

        Raises:
            BotError: if Discord cannot be reached or rejects the token
        """
        try:
            user = await self.http.current_user()
            application = await self.http.current_application()
        except (HTTPError, aiohttp.ClientError, OSError) as e:
            self.log.critical("Cannot log in to Discord: %s", e)
            raise BotError from e
        self.cache.current_user = user
        self.ctx = Context(
            config=self.config,
            http=self.http,
            cache=self.cache,
            commands=self.commands,
            application_id=int(application["id"]),
            user=user,
            log=get_logger("commands"),
        )
        self.dispatcher = Dispatcher(self.ctx)
        self.log.info("logged in as %s (%s)", user.get("username"), user["id"])

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Run `coro` in a tracked task."""
        task = asyncio.create_task(self._guarded(coro, name), name=name)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def _guarded(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception:  # pylint: disable=broad-exception-caught
            self.log.exception("%s failed", name)

    async def handle_event(self, event: str, data: dict[str, Any]) -> None:
        """Update the cache then schedule the handler of `event`, if any."""
        self.cache.update(event, data)
        handler = getattr(self, f"event_{event.lower()}", None)
        if handler is not None:
            self.spawn(handler(data), event)

    async def event_ready(self, data: dict[str, Any]) -> None:
        """Register the application commands."""
        schemas = self.commands.schemas()
        await self.http.set_global_commands(self.ctx.application_id, schemas)
        self.log.info("registered %d application commands in %d guilds", len(schemas), len(data.get("guilds", [])))

    async def event_guild_create(self, data: dict[str, Any]) -> None:
        """Leave guilds which are not whitelisted."""
        whitelist = self.config.whitelist
        guild_id = int(data["id"])
        if whitelist is not None and guild_id not in whitelist:
            self.log.warning("leaving guild %s (%s): not whitelisted", data.get("name"), guild_id)
            await self.http.leave_guild(guild_id)

    async def event_message_create(self, data: dict[str, Any]) -> None:
        """Run classic commands."""
        if data.get("author", {}).get("bot"):
            return
        await self.dispatcher.classic(data)  # type: ignore[arg-type]

    async def event_interaction_create(self, data: dict[str, Any]) -> None:
        """Run application commands."""
        await self.dispatcher.interaction(data)  # type: ignore[arg-type]

    async def _reaction_role(self, data: dict[str, Any]) -> int | None:
        if "guild_id" not in data or int(data["user_id"]) == self.ctx.user_id:
            return None
        if data.get("member", {}).get("user", {}).get("bot"):
            return None
        mapping = await self.config.reaction_roles(int(data["guild_id"]), int(data["channel_id"]), int(data["message_id"]))
        return mapping.get(emoji_key(data["emoji"]))

    async def event_message_reaction_add(self, data: dict[str, Any]) -> None:
        """Give the mapped role to the reacting member."""
        role_id = await self._reaction_role(data)
        if role_id is not None:
            await self.http.add_member_role(int(data["guild_id"]), int(data["user_id"]), role_id)

    async def event_message_reaction_remove(self, data: dict[str, Any]) -> None:
        """Take the mapped role from the member."""
        role_id = await self._reaction_role(data)
        if role_id is not None:
            await self.http.remove_member_role(int(data["guild_id"]), int(data["user_id"]), role_id)

    async def event_message_delete(self, data: dict[str, Any]) -> None:
        """Forget the reaction roles of a deleted message."""
        if "guild_id" in data:
            await self.config.remove_reaction_roles(int(data["guild_id"]), int(data["channel_id"]), [int(data["id"])])

    async def event_message_delete_bulk(self, data: dict[str, Any]) -> None:
        """Forget the reaction roles of deleted messages."""
        if "guild_id" in data:
            await self.config.remove_reaction_roles(int(data["guild_id"]), int(data["channel_id"]), [int(i) for i in data["ids"]])

    async def run(self) -> None:
        """Consume gateway events until stopped."""
        async for event, data in self.gateway.events():
            if self.stopped:
                break
            await self.handle_event(event, data)

    async def stop(self) -> None:
        """Stop reading events, let running commands finish and release resources."""
        if self.stopped:
            return
        self.stopped = True
        self.log.info("shutting down")
        await self.gateway.close()
        if self.tasks:
            _, pending = await asyncio.wait(set(self.tasks), timeout=SHUTDOWN_TIMEOUT)
            for task in pending:
                task.cancel()
        await self.http.close()


async def run_bot(token: str, settings: Configuration, commands: Commands) -> None:
    """Run the bot until SIGINT or SIGTERM.

    Raises:
        BotError: when the connection to Discord fails
    """
    bot = RivetBot(token, settings, commands)
    loop = asyncio.get_running_loop()
    try:
        await bot.initialize()
        await bot.gateway.connect_with_retry()
        runner = asyncio.create_task(bot.run())

        def _shutdown() -> None:
            runner.cancel()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown)
        with contextlib.suppress(asyncio.CancelledError):
            await runner
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await bot.stop()
