"""Commands about the bot itself: ping, about and help."""

from __future__ import annotations

from .. import VERSION
from ..commands.builder import command, string
from ..commands.errors import CreateMessage, Response
from ..commands.requests import ClassicRequest, SlashRequest
from ..commands.tree import render_command_help, render_command_tree
from ..constants import MESSAGE_MAX_LENGTH
from ..context import Context

__all__ = ["COMMANDS", "about", "fit_message", "help_", "ping"]

REPOSITORY = "https://github.com/rivetbot/rivetbot"
TRUNCATED = "... (truncated)"


def _guild_id(req: ClassicRequest | SlashRequest) -> int | None:
    payload = req.message if isinstance(req, ClassicRequest) else req.interaction
    return int(payload["guild_id"]) if payload.get("guild_id") else None


async def ping(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:  # noqa: ARG001
    """Ping the bot."""
    return CreateMessage("Pong!")


async def about(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """Display info about the bot."""
    prefix = await ctx.config.classic_prefix(_guild_id(req))
    return CreateMessage(
        "I am a RivetingBot!\n"
        f"You can list my commands with `/help` or `{prefix}help` command.\n"
        f"My current version *(allegedly)* is `{VERSION}`.\n"
        f"My source is available at <{REPOSITORY}>"
    )


async def help_(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
    """List commands, or show the usage of one."""
    if "command" in req.args:
        return CreateMessage(render_command_help(ctx.commands, req.args.get_string("command")))
    prefix = await ctx.config.classic_prefix(_guild_id(req))
    header = f"```yaml\nPrefix: '/' or '{prefix}'\nCommands:"
    return CreateMessage(fit_message(header, render_command_tree(ctx.commands).splitlines(), "```"))


def fit_message(header: str, lines: list[str], footer: str = "") -> str:
    """Join `header`, `lines` and `footer` one per line, dropping the lines past the message limit."""
    budget = MESSAGE_MAX_LENGTH - len(header) - len(footer) - len(TRUNCATED) - 2
    kept: list[str] = []
    for line in lines:
        budget -= len(line) + 1
        if budget < 0:
            kept.append(TRUNCATED)
            break
        kept.append(line)
    return "\n".join([header, *kept, footer] if footer else [header, *kept])


COMMANDS = [
    command("ping", "Ping the bot.").attach(ping).dm(),
    command("about", "Display info about the bot.").attach(about).dm(),
    command("help", "List bot commands.").attach(help_).option(string("command", "Get help on a command.")).dm(),
]
