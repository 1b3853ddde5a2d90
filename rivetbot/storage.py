"""Bot settings storage.

Global settings come from the ``[bot]`` section of a TOML file. Guild settings
are JSON documents under ``<data_dir>/guilds/<guild id>.json``, loaded on first
use and rewritten after every update.

In-memory state is guarded by a ``threading.Lock``; the lock only covers
dictionary reads and updates and is never held across an ``await``. Updates
of a guild are serialized by a per-guild ``asyncio.Lock`` held until the new
document is on disk, and only then become visible.
"""

from __future__ import annotations

import asyncio
import copy
import json
import threading
import tomllib
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from aiofiles import open as aiopen
from aiofiles import os as aios

from .config import Configuration
from .constants import DEFAULT_PREFIX
from .types import BotError
from .validation import BOT_SCHEMA, ConfigValidator

if TYPE_CHECKING:
    import logging

__all__ = ["ConfigStore", "GuildSettings", "load_settings", "reaction_roles_key"]

T = TypeVar("T")


def reaction_roles_key(channel_id: int, message_id: int) -> str:
    """Key of a reaction-role mapping in the guild settings."""
    return f"{channel_id}.{message_id}"


@dataclass
class GuildSettings:
    """Per-guild settings.

    Attributes:
        prefix: Classic prefix overriding the global one
        aliases: Alias word to command line
        reaction_roles: Mapping key (see ``reaction_roles_key``) to emoji to role id
    """

    prefix: str | None = None
    aliases: dict[str, str] = field(default_factory=dict)
    reaction_roles: dict[str, dict[str, int]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> GuildSettings:
        """Build from a decoded JSON document, ignoring unknown keys."""
        return cls(
            prefix=data.get("prefix"),
            aliases={str(k): str(v) for k, v in (data.get("aliases") or {}).items()},
            reaction_roles={
                str(key): {str(emoji): int(role) for emoji, role in roles.items()} for key, roles in (data.get("reaction_roles") or {}).items()
            },
        )

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable document."""
        return asdict(self)


def load_settings(path: str | Path, logger: logging.Logger) -> Configuration:
    """Load and validate the ``[bot]`` section of the TOML settings file.

    A missing file yields the defaults.

    Raises:
        BotError: if the file is not valid TOML or the section is invalid
    """
    path = Path(path).expanduser()
    section: dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("rb") as f:
                section = tomllib.load(f).get("bot", {})
        except tomllib.TOMLDecodeError as e:
            logger.critical("Invalid TOML syntax in %s: %s", path, e)
            raise BotError from e
    else:
        logger.info("No settings file at %s, using defaults", path)

    validator = ConfigValidator(section, "bot", logger)
    errors = validator.validate(BOT_SCHEMA)
    validator.warn_unknown_keys(BOT_SCHEMA)
    if errors:
        for error in errors:
            logger.critical(error)
        raise BotError
    return Configuration(section, logger=logger, schema=BOT_SCHEMA)


class ConfigStore:
    """Global and per-guild settings."""

    def __init__(self, settings: Configuration, logger: logging.Logger) -> None:
        self.settings = settings
        self.log = logger
        self.guilds_dir = settings.get_path("data_dir", "./data") / "guilds"
        self._guilds: dict[int, GuildSettings] = {}
        self._lock = threading.Lock()
        self._write_locks: dict[int, asyncio.Lock] = {}

    @property
    def global_prefix(self) -> str:
        """The classic prefix outside of guilds."""
        return self.settings.get_str("prefix", DEFAULT_PREFIX)

    @property
    def whitelist(self) -> list[int] | None:
        """Guild ids the bot may join, None when unrestricted."""
        return self.settings.get_snowflakes("whitelist")

    @property
    def dev_channel(self) -> int | None:
        """Channel receiving detailed classic command errors."""
        return self.settings.get_snowflake("dev_channel")

    def _guild_path(self, guild_id: int) -> Path:
        return self.guilds_dir / f"{guild_id}.json"

    async def _load(self, guild_id: int) -> None:
        with self._lock:
            if guild_id in self._guilds:
                return
        path = self._guild_path(guild_id)
        settings = GuildSettings()
        if await aios.path.exists(path):
            async with aiopen(path, encoding="utf-8") as f:
                raw = await f.read()
            try:
                settings = GuildSettings.from_json(json.loads(raw))
            except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
                self.log.exception("Invalid guild settings in %s, using defaults", path)
        with self._lock:
            self._guilds.setdefault(guild_id, settings)

    async def _save(self, guild_id: int, document: dict[str, Any]) -> None:
        await aios.makedirs(self.guilds_dir, exist_ok=True)
        path = self._guild_path(guild_id)
        tmp = path.with_suffix(".json.tmp")
        async with aiopen(tmp, "w", encoding="utf-8") as f:
            await f.write(json.dumps(document, indent=2))
        await aios.replace(tmp, path)

    async def guild_settings(self, guild_id: int) -> GuildSettings:
        """Return a copy of the settings of `guild_id`."""
        await self._load(guild_id)
        with self._lock:
            return copy.deepcopy(self._guilds[guild_id])

    def _write_lock(self, guild_id: int) -> asyncio.Lock:
        with self._lock:
            return self._write_locks.setdefault(guild_id, asyncio.Lock())

    async def update_guild(self, guild_id: int, update: Callable[[GuildSettings], T]) -> T:
        """Apply `update` to the settings of `guild_id` and persist them.

        The change becomes visible once it is written; if writing fails the
        settings in memory are left as they were.

        Args:
            guild_id: The guild
            update: Called with a private copy of the settings, must not block

        Returns:
            What `update` returned

        Raises:
            OSError: if the settings could not be written
        """
        async with self._write_lock(guild_id):
            await self._load(guild_id)
            with self._lock:
                draft = copy.deepcopy(self._guilds[guild_id])
            result = update(draft)
            await self._save(guild_id, draft.to_json())
            with self._lock:
                self._guilds[guild_id] = draft
        return result

    async def classic_prefix(self, guild_id: int | None) -> str:
        """Return the prefix in effect; no storage access outside guilds."""
        if guild_id is None:
            return self.global_prefix
        await self._load(guild_id)
        with self._lock:
            return self._guilds[guild_id].prefix or self.global_prefix

    async def aliases(self, guild_id: int | None) -> dict[str, str]:
        """Return the aliases of a guild."""
        if guild_id is None:
            return {}
        return (await self.guild_settings(guild_id)).aliases

    async def reaction_roles(self, guild_id: int, channel_id: int, message_id: int) -> dict[str, int]:
        """Return the emoji to role mapping of a message."""
        settings = await self.guild_settings(guild_id)
        return settings.reaction_roles.get(reaction_roles_key(channel_id, message_id), {})

    async def remove_reaction_roles(self, guild_id: int, channel_id: int, message_ids: list[int]) -> bool:
        """Drop the mappings of deleted messages.

        Returns:
            True if any mapping was removed
        """
        keys = {reaction_roles_key(channel_id, message_id) for message_id in message_ids}
        settings = await self.guild_settings(guild_id)
        if not keys & settings.reaction_roles.keys():
            return False

        def _remove(live: GuildSettings) -> bool:
            removed = False
            for key in keys:
                removed = live.reaction_roles.pop(key, None) is not None or removed
            return removed

        return await self.update_guild(guild_id, _remove)
