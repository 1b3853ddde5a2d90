"""Typed access to the ``[bot]`` settings section."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging

    from .validation import ConfigItems

__all__ = ["Configuration", "parse_snowflake"]


def parse_snowflake(value: Any) -> int | None:  # noqa: ANN401
    """Read a platform id from an integer or a string of digits.

    Returns:
        The id, or None if `value` is not a positive id
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


class Configuration(dict):
    """The settings section, absent keys falling back to the schema defaults.

    Accessors log malformed values and return a fallback: startup validation
    already reported them.
    """

    def __init__(self, values: dict[str, Any] | None = None, *, logger: logging.Logger, schema: ConfigItems | None = None) -> None:
        super().__init__(values or {})
        self.log = logger
        self.defaults: dict[str, Any] = schema.defaults() if schema is not None else {}

    def get(self, name: str, default: Any = None) -> Any:  # type: ignore[override]  # noqa: ANN401
        """Get a value, then the schema default, then `default`."""
        if name in self:
            return self[name]
        return self.defaults.get(name, default)

    def get_str(self, name: str, default: str = "") -> str:
        value = self.get(name)
        return default if value is None else str(value)

    def get_path(self, name: str, default: str = ".") -> Path:
        """Get a filesystem path, ``~`` expanded."""
        return Path(self.get_str(name, default)).expanduser()

    def get_snowflake(self, name: str) -> int | None:
        """Get a platform id, None when unset or malformed."""
        value = self.get(name)
        if value is None:
            return None
        snowflake = parse_snowflake(value)
        if snowflake is None:
            self.log.warning("Invalid id for %s: %r", name, value)
        return snowflake

    def get_snowflakes(self, name: str) -> list[int] | None:
        """Get a list of platform ids, None when unset.

        A single id is accepted in place of a list; malformed items are dropped.
        """
        value = self.get(name)
        if value is None:
            return None
        ids = []
        for item in value if isinstance(value, list) else [value]:
            snowflake = parse_snowflake(item)
            if snowflake is None:
                self.log.warning("Invalid id in %s: %r", name, item)
            else:
                ids.append(snowflake)
        return ids
