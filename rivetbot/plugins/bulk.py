"""Bulk message deletion."""

from __future__ import annotations

import time
from datetime import datetime

from ..commands.builder import command, integer
from ..commands.errors import CLEAR, MissingArgs, Response
from ..commands.requests import ClassicRequest, SlashRequest
from ..constants import MAX_DELETE, TWO_WEEKS_SECS
from ..context import Context
from ..types import Permissions

__all__ = ["COMMANDS", "bulk_delete", "delete_before"]


async def delete_before(ctx: Context, channel_id: int, message_id: int | None, amount: int, now: float) -> int:
    """Delete up to `amount` messages older than `message_id`.

    Messages older than two weeks cannot be bulk deleted and are skipped.

    Args:
        ctx: The bot context
        channel_id: The channel to clean
        message_id: Newest message to keep, the latest message of the channel if not set
        amount: Number of messages to delete
        now: Current UNIX time

    Returns:
        The number of deleted messages
    """
    amount = min(amount, MAX_DELETE)
    if amount <= 0:
        return 0
    if message_id is None:
        latest = await ctx.http.channel_messages(channel_id, limit=1)
        if not latest:
            raise MissingArgs("no message to delete")
        message_id = int(latest[0]["id"])

    two_weeks_ago = now - TWO_WEEKS_SECS
    messages = await ctx.http.channel_messages(channel_id, limit=amount, before=message_id)
    ids = [int(m["id"]) for m in messages if datetime.fromisoformat(m["timestamp"]).timestamp() > two_weeks_ago]
    ctx.log.debug("Deleting %d messages", len(ids))

    if len(ids) > 1:
        await ctx.http.delete_messages(channel_id, ids)
    elif ids:
        await ctx.http.delete_message(channel_id, ids[0])
    return len(ids)


async def bulk_delete(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Delete many messages."""
    amount = req.args.get_integer("amount")
    if isinstance(req, ClassicRequest):
        message = req.message
        now = datetime.fromisoformat(message["timestamp"]).timestamp()
        await delete_before(ctx, int(message["channel_id"]), int(message["id"]), amount, now)
    else:
        channel_id = req.interaction.get("channel_id")
        if channel_id is None:
            raise MissingArgs("channel")
        await delete_before(ctx, int(channel_id), None, amount, time.time())
    return CLEAR


COMMANDS = [
    command("bulk-delete", "Delete many messages.")
    .attach(bulk_delete)
    .permissions(Permissions.MANAGE_MESSAGES)
    .option(integer("amount", "Number of messages to delete.").required().min(0).max(MAX_DELETE)),
]
