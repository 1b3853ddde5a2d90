"""Guild command aliases.

An alias maps a single word to a command line: with ``hi`` set to ``help
ping``, ``!hi`` runs ``!help ping``. Aliases never shadow real commands.
"""

from __future__ import annotations

from ..commands.builder import command, string, sub
from ..commands.errors import NONE, CreateMessage, Disabled, ParseError, Response, UnknownResource
from ..commands.requests import ClassicRequest
from ..context import Context
from ..storage import GuildSettings
from ..types import Permissions

__all__ = ["COMMANDS", "alias_get", "alias_list", "alias_remove", "alias_set"]


def _guild_id(req: ClassicRequest) -> int:
    guild_id = req.message.get("guild_id")
    if not guild_id:
        raise Disabled("alias")
    return int(guild_id)


async def alias_list(ctx: Context, req: ClassicRequest) -> Response:
    """List guild aliases."""
    aliases = await ctx.config.aliases(_guild_id(req))
    if not aliases:
        return CreateMessage("No aliases defined.")
    return CreateMessage("\n".join(f"`{name}` -> `{line}`" for name, line in sorted(aliases.items())))


async def alias_get(ctx: Context, req: ClassicRequest) -> Response:
    """Show one alias."""
    name = req.args.get_string("name")
    aliases = await ctx.config.aliases(_guild_id(req))
    if name not in aliases:
        raise UnknownResource(f"alias '{name}'")
    return CreateMessage(f"`{name}` -> `{aliases[name]}`")


async def alias_set(ctx: Context, req: ClassicRequest) -> Response:
    """Create or replace an alias."""
    guild_id = _guild_id(req)
    name = req.args.get_string("name")
    line = req.args.get_string("command").strip()
    if not name or any(c.isspace() for c in name):
        raise ParseError(f"alias '{name}' must be a single word")
    if name in ctx.commands:
        raise ParseError(f"'{name}' is already a command")
    target = line.split(maxsplit=1)[0] if line else ""
    if target not in ctx.commands:
        raise UnknownResource(f"command '{target}'")

    def _set(settings: GuildSettings) -> None:
        settings.aliases[name] = line

    await ctx.config.update_guild(guild_id, _set)
    ctx.log.info("guild %s: alias '%s' set to '%s'", guild_id, name, line)
    return NONE


async def alias_remove(ctx: Context, req: ClassicRequest) -> Response:
    """Delete an alias."""
    guild_id = _guild_id(req)
    name = req.args.get_string("name")

    def _remove(settings: GuildSettings) -> bool:
        return settings.aliases.pop(name, None) is not None

    if not await ctx.config.update_guild(guild_id, _remove):
        raise UnknownResource(f"alias '{name}'")
    return CreateMessage(f"Removed alias `{name}`.")


COMMANDS = [
    command("alias", "Manage guild aliases.")
    .permissions(Permissions.MANAGE_GUILD)
    .option(sub("list", "List guild aliases.").attach(alias_list))
    .option(sub("get", "Get a guild alias.").attach(alias_get).option(string("name", "Alias name.").required()))
    .option(
        sub("set", "Set a guild alias.")
        .attach(alias_set)
        .option(string("name", "Alias to set.").required())
        .option(string("command", "Command line the alias runs.").required())
    )
    .option(sub("remove", "Delete a guild alias.").attach(alias_remove).option(string("name", "Alias to delete.").required())),
]
