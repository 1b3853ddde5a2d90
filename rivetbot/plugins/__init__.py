"""Bundled commands.

Every plugin module exposes ``COMMANDS``, a list of base command builders.
"""

from ..commands.registry import Commands, CommandsBuilder
from . import alias, bot, bulk, coinflip, fuel, meta, mute, quote, roles, user_info

__all__ = ["PLUGINS", "create_commands"]

PLUGINS = (meta, coinflip, fuel, quote, user_info, bulk, alias, bot, roles, mute)


def create_commands() -> Commands:
    """Build the command registry from every bundled plugin.

    Raises:
        CommandValidationError: if a command breaks a registration rule
    """
    builder = CommandsBuilder()
    for plugin in PLUGINS:
        for command in plugin.COMMANDS:
            builder.bind(command)
    return builder.build()
