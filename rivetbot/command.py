"""rivetbot - a Discord bot with classic and application commands."""

import asyncio
import os
import sys

from .bot import run_bot
from .commands.validation import CommandValidationError
from .constants import CONFIG_FILE
from .logging_setup import add_log_file, get_logger, init_logger
from .plugins import create_commands
from .storage import load_settings
from .types import BotError, ExitCode

__all__ = ["main", "run", "use_param"]

USAGE = """Usage: rivetbot [--config <file>] [--debug <logfile>]

The bot token is read from the DISCORD_TOKEN environment variable."""


def use_param(txt: str) -> str:
    """Check if parameter `txt` is in sys.argv.

    if found, removes it from sys.argv & returns the argument value

    Raises:
        IndexError: when the parameter has no value
    """
    v = ""
    if txt in sys.argv:
        i = sys.argv.index(txt)
        v = sys.argv[i + 1]
        del sys.argv[i : i + 2]
    return v


def run() -> ExitCode:  # noqa: PLR0911
    """Parse the command line, load the settings and run the bot."""
    try:
        debug_flag = use_param("--debug")
        config_file = use_param("--config") or CONFIG_FILE
    except IndexError:
        print(USAGE)
        return ExitCode.USAGE_ERROR
    if len(sys.argv) > 1:
        print(USAGE)
        return ExitCode.SUCCESS if sys.argv[1] in ("-h", "--help") else ExitCode.USAGE_ERROR

    if debug_flag:
        init_logger(filename=debug_flag, force_debug=True)
    else:
        init_logger()
    log = get_logger("startup")

    token = os.environ.get("DISCORD_TOKEN", "").strip()
    if not token:
        log.critical("DISCORD_TOKEN is not set")
        return ExitCode.ENV_ERROR

    try:
        settings = load_settings(config_file, log)
    except BotError:
        log.critical("Invalid settings in %s", config_file)
        return ExitCode.CONFIG_ERROR

    if settings.get_str("log_file") and not debug_flag:
        add_log_file(settings.get_str("log_file"))
        log = get_logger("startup")

    try:
        commands = create_commands()
    except CommandValidationError as e:
        log.critical("Invalid command registry: %s", e)
        return ExitCode.CONFIG_ERROR

    try:
        asyncio.run(run_bot(token, settings, commands))
    except KeyboardInterrupt:
        pass
    except BotError:
        log.critical("Connection to Discord failed.")
        return ExitCode.CONNECTION_ERROR
    return ExitCode.SUCCESS


def main() -> None:
    """Run the command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
