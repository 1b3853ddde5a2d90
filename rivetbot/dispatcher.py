"""Command dispatch: gates, handler fan-out and response materialization.

This is the only part of the command core which talks to Discord. Every side
effect of one invocation is awaited in order: acknowledge, execute, respond.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiohttp

from .commands.errors import (
    NONE,
    AccessDenied,
    Clear,
    CommandError,
    CreateMessage,
    Disabled,
    NoResponse,
    NotFound,
    NotPrefixed,
    OtherError,
    Response,
)
from .commands.handlers import Variant
from .commands.interaction import decode_interaction
from .commands.parsing import parse_classic
from .commands.requests import ClassicRequest, MessageRequest, SlashRequest, UserRequest
from .constants import ERROR_MESSAGE
from .http import HTTPError
from .logging_setup import get_logger
from .permissions import sender_has_permissions
from .types import CommandType, InteractionType, MessageFlags

if TYPE_CHECKING:
    from .commands.handlers import Handler
    from .commands.parsing import ClassicInvocation
    from .commands.requests import Request
    from .context import Context
    from .types import InteractionInfo, MessageInfo

__all__ = ["Dispatcher", "invoker_id"]

_RESPONSE_TYPES = (NoResponse, Clear, CreateMessage)


def invoker_id(payload: MessageInfo | InteractionInfo) -> int | None:
    """Id of the user behind a message or an interaction."""
    if "author" in payload:
        return int(payload["author"]["id"])  # type: ignore[typeddict-item]
    user = payload.get("member", {}).get("user") or payload.get("user")  # type: ignore[attr-defined]
    return int(user["id"]) if user else None


class Dispatcher:
    """Routes chat messages and interactions to command handlers."""

    def __init__(self, ctx: Context) -> None:
        self.ctx = ctx
        self.log = get_logger("dispatch")

    async def execute(self, handlers: tuple[Handler, ...], request: Request, path: str, invoker: int | None) -> Response:
        """Run every handler concurrently and aggregate their outcomes.

        Results are examined in attachment order: the first error wins and the
        others are logged; without errors the last handler's response wins.

        Raises:
            CommandError: the first error, other exceptions wrapped in OtherError
        """
        results = await asyncio.gather(*(handler(self.ctx, request) for handler in handlers), return_exceptions=True)
        first_error: CommandError | None = None
        response: Response = NONE
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                error = result if isinstance(result, CommandError) else OtherError(result)
                if first_error is None:
                    first_error = error
                else:
                    self.log.warning("'%s' (%s) for user %s also failed: %s", path, handler.name, invoker, error)
                continue
            if result is None:
                result = NONE
            if not isinstance(result, _RESPONSE_TYPES):
                error = OtherError(TypeError(f"{handler.name} returned {result!r}"))
                first_error = first_error or error
                continue
            response = result
        if first_error is not None:
            raise first_error
        return response

    def _log_failure(self, path: str, invoker: int | None, error: CommandError) -> None:
        if isinstance(error, OtherError):
            self.log.error("'%s' failed for user %s: %s", path, invoker, error, exc_info=error)
        else:
            self.log.info("'%s' stopped for user %s: %s", path, invoker, error)

    # Classic path

    async def _parse_classic(self, message: MessageInfo, guild_id: int | None) -> ClassicInvocation:
        content = message.get("content", "")
        prefix = await self.ctx.config.classic_prefix(guild_id)
        try:
            return parse_classic(content, prefix, self.ctx.commands, message)
        except NotFound:
            if guild_id is None:
                raise
            aliases = await self.ctx.config.aliases(guild_id)
            if not aliases:
                raise
            return parse_classic(content, prefix, self.ctx.commands, message, aliases)

    async def classic(self, message: MessageInfo) -> Response | None:
        """Handle a chat message.

        Returns:
            The applied response, None when nothing ran
        """
        guild_id = int(message["guild_id"]) if "guild_id" in message else None
        invoker = invoker_id(message)
        try:
            invocation = await self._parse_classic(message, guild_id)
        except NotPrefixed:
            return None
        except NotFound as e:
            self.log.debug("unknown command from %s: %s", invoker, e)
            await self._reply(message, f"Command `{e.detail}` not found, try `help`." if e.detail else "Which command? Try `help`.")
            return None
        except CommandError as e:
            self.log.debug("invalid command from %s: %s", invoker, e)
            await self._reply(message, str(e))
            return None

        path = " ".join(invocation.path)
        base = invocation.command
        self.log.debug("classic '%s' from %s with %s", path, invoker, invocation.args)
        try:
            if not base.dm_enabled and guild_id is None:
                raise Disabled(path)
            if base.member_permissions is not None and not await sender_has_permissions(self.ctx, message, base.member_permissions):
                raise AccessDenied(path)
            request = ClassicRequest(base, invocation.args, message)
            response = await self.execute(invocation.node.handlers.get(Variant.CLASSIC), request, path, invoker)
        except (Disabled, AccessDenied) as e:
            self._log_failure(path, invoker, e)
            await self._reply(message, str(e))
            return None
        except CommandError as e:
            self._log_failure(path, invoker, e)
            await self._reply(message, ERROR_MESSAGE)
            await self._report_to_dev(message, path, e)
            return None
        except (HTTPError, aiohttp.ClientError) as e:
            error = OtherError(e)
            self._log_failure(path, invoker, error)
            await self._reply(message, ERROR_MESSAGE)
            return None

        await self._apply_classic(message, response)
        return response

    async def _apply_classic(self, message: MessageInfo, response: Response) -> None:
        channel_id = int(message["channel_id"])
        try:
            if isinstance(response, Clear):
                await self.ctx.http.delete_message(channel_id, int(message["id"]))
            elif isinstance(response, CreateMessage):
                await self.ctx.http.create_message(channel_id, response.text, reply_to=int(message["id"]))
        except HTTPError:
            self.log.exception("could not apply %s to message %s", response, message["id"])

    async def _reply(self, message: MessageInfo, text: str) -> None:
        try:
            await self.ctx.http.create_message(int(message["channel_id"]), text, reply_to=int(message["id"]))
        except HTTPError:
            self.log.exception("could not reply to message %s", message["id"])

    async def _report_to_dev(self, message: MessageInfo, path: str, error: CommandError) -> None:
        dev_channel = self.ctx.config.dev_channel
        if dev_channel is None or dev_channel != int(message["channel_id"]):
            return
        cause = error.__cause__
        detail = f"`{path}`: {error}" + (f"\n```{type(cause).__name__}: {cause}```" if cause is not None else "")
        await self._reply(message, detail)

    # Interaction path

    async def interaction(self, interaction: InteractionInfo) -> Response | None:
        """Handle an application command interaction.

        Returns:
            The applied response, None when nothing ran
        """
        if interaction.get("type") != InteractionType.APPLICATION_COMMAND or "data" not in interaction:
            return None
        data = interaction["data"]
        invoker = invoker_id(interaction)
        interaction_id = int(interaction["id"])
        token = interaction["token"]

        chat_input = data.get("type", CommandType.CHAT_INPUT) == CommandType.CHAT_INPUT
        flags = 0 if chat_input else MessageFlags.EPHEMERAL | MessageFlags.LOADING
        try:
            await self.ctx.http.create_response(interaction_id, token, flags)
        except HTTPError:
            self.log.exception("could not acknowledge interaction %s", interaction_id)
            return None

        try:
            invocation = decode_interaction(self.ctx.commands, data)
        except CommandError as e:
            self.log.debug("invalid interaction from %s: %s", invoker, e)
            await self._followup(token, str(e))
            return None

        path = " ".join(invocation.path)
        base = invocation.command
        request: Request
        if invocation.variant == Variant.SLASH:
            request = SlashRequest(base, invocation.args, interaction)
        elif invocation.variant == Variant.MESSAGE:
            request = MessageRequest(base, invocation.args, interaction, invocation.target)  # type: ignore[arg-type]
        else:
            request = UserRequest(base, invocation.args, interaction, invocation.target)  # type: ignore[arg-type]
        self.log.debug("%s '%s' from %s with %s", invocation.variant, path, invoker, invocation.args)

        try:
            response = await self.execute(invocation.node.handlers.get(invocation.variant), request, path, invoker)
        except CommandError as e:
            self._log_failure(path, invoker, e)
            await self._followup(token, ERROR_MESSAGE)
            return None

        try:
            if isinstance(response, CreateMessage):
                await self.ctx.http.update_response(self.ctx.application_id, token, response.text)
            else:
                await self.ctx.http.delete_response(self.ctx.application_id, token)
        except HTTPError:
            self.log.exception("could not apply %s to interaction %s", response, interaction_id)
        return response

    async def _followup(self, token: str, text: str) -> None:
        try:
            await self.ctx.http.create_followup(self.ctx.application_id, token, text, flags=MessageFlags.EPHEMERAL)
        except HTTPError:
            self.log.exception("could not send followup")
