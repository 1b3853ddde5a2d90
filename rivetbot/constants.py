"""Constants used across the bot."""

import os

__all__ = [
    "API_BASE",
    "API_VERSION",
    "CONFIG_FILE",
    "DATA_DIR",
    "DEFAULT_PREFIX",
    "DELIMITERS",
    "DESCRIPTION_MAX_LENGTH",
    "ERROR_MESSAGE",
    "GATEWAY_RETRIES",
    "GATEWAY_VERSION",
    "HTTP_RETRIES",
    "MAX_DELETE",
    "MESSAGE_CACHE_SIZE",
    "MESSAGE_MAX_LENGTH",
    "NAME_MAX_LENGTH",
    "SHUTDOWN_TIMEOUT",
    "TWO_WEEKS_SECS",
]

DEFAULT_PREFIX = "!"
DATA_DIR = "./data"
CONFIG_FILE = os.environ.get("RIVETBOT_CONFIG", f"{DATA_DIR}/config.toml")

API_VERSION = 10
API_BASE = f"https://discord.com/api/v{API_VERSION}"
GATEWAY_VERSION = API_VERSION

# Generic reply when a handler fails; details only go to the log
ERROR_MESSAGE = "The bot has encountered an error executing the command! :confused:"

# Characters accepted as quote delimiters by the classic tokenizer
DELIMITERS = ("'", '"', "`")

# Platform limits
NAME_MAX_LENGTH = 32
DESCRIPTION_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 2000
MAX_DELETE = 100
TWO_WEEKS_SECS = 60 * 60 * 24 * 7 * 2

MESSAGE_CACHE_SIZE = 2000
HTTP_RETRIES = 3
GATEWAY_RETRIES = 10
SHUTDOWN_TIMEOUT = 30.0
