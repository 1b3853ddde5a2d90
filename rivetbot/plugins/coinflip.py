"""Coin flip."""

from __future__ import annotations

import random

from ..commands.builder import command
from ..commands.errors import CreateMessage, Response
from ..commands.requests import ClassicRequest, SlashRequest
from ..context import Context

__all__ = ["COMMANDS", "coinflip"]

HEADS = ":coin: Heads"
TAILS = "Tails :coin:"


async def coinflip(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:  # noqa: ARG001
    """Flip a coin."""
    return CreateMessage(HEADS if random.random() < 0.5 else TAILS)  # noqa: S311, PLR2004


COMMANDS = [command("coinflip", "Flip a coin.").attach(coinflip).dm()]
