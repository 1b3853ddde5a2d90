"""Schema of the ``[bot]`` settings section and its validator.

A ``ConfigField`` names a key, the types it accepts and an optional check
returning error messages. ``ConfigValidator`` collects every problem of a
section in one pass and suggests the closest known key for typos.
"""

import difflib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import parse_snowflake

__all__ = [
    "BOT_SCHEMA",
    "ConfigField",
    "ConfigItems",
    "ConfigValidator",
    "format_config_error",
]


@dataclass(frozen=True)
class ConfigField:
    """One key of a settings section.

    Attributes:
        name: Key in the section
        types: Accepted value types
        default: Value used when the key is absent
        required: Whether the key must be present
        choices: Accepted values, anything when None
        check: Extra validation returning error messages
        description: Human-readable description
    """

    name: str
    types: tuple[type, ...] = (str,)
    default: Any = None
    required: bool = False
    choices: tuple[Any, ...] | None = None
    check: Callable[[Any], list[str]] | None = None
    description: str = ""

    @property
    def type_name(self) -> str:
        return " or ".join(typ.__name__ for typ in self.types)

    def accepts(self, value: Any) -> bool:  # noqa: ANN401
        # TOML booleans are not integers
        if isinstance(value, bool):
            return bool in self.types
        return isinstance(value, self.types)


class ConfigItems(list[ConfigField]):
    """The fields of a section, indexed by name."""

    def __init__(self, *fields: ConfigField) -> None:
        super().__init__(fields)
        self.by_name = {f.name: f for f in fields}

    def defaults(self) -> dict[str, Any]:
        """Default values of the fields that have one."""
        return {f.name: f.default for f in self if f.default is not None}

    def closest(self, key: str) -> str | None:
        """Known key closest to a misspelled one, if any."""
        matches = difflib.get_close_matches(key, list(self.by_name), n=1)
        return matches[0] if matches else None


def format_config_error(section: str, key: str, message: str, hint: str = "") -> str:
    """Format a configuration error message."""
    text = f"[{section}] Config error for '{key}': {message}"
    return f"{text} -> {hint}" if hint else text


def _check_ids(value: Any) -> list[str]:  # noqa: ANN401
    items = value if isinstance(value, list) else [value]
    return [f"{item!r} is not a valid id" for item in items if parse_snowflake(item) is None]


def _check_prefix(value: str) -> list[str]:
    if not value.strip() or any(c.isspace() for c in value):
        return ["prefix must be non-empty and contain no whitespace"]
    return []


BOT_SCHEMA = ConfigItems(
    ConfigField("prefix", default="!", check=_check_prefix, description="Classic command prefix"),
    ConfigField("whitelist", (list,), check=_check_ids, description="Guild ids the bot may stay in"),
    ConfigField("data_dir", default="./data", description="Directory holding guild settings"),
    ConfigField("dev_channel", (int, str), check=_check_ids, description="Channel receiving detailed command errors"),
    ConfigField("log_file", description="File receiving the log"),
)


class ConfigValidator:
    """Checks a settings section against a schema."""

    def __init__(self, config: dict, section: str, logger: logging.Logger) -> None:
        self.config = config
        self.section = section
        self.log = logger

    def validate(self, schema: ConfigItems) -> list[str]:
        """Return every error of the section, empty when it is valid."""
        errors: list[str] = []
        for field_def in schema:
            errors.extend(self._field_errors(field_def))
        return errors

    def _field_errors(self, field_def: ConfigField) -> list[str]:
        value = self.config.get(field_def.name)
        if value is None:
            if field_def.required:
                return [self._error(field_def.name, "Missing required field", f"Add {field_def.name} to [{self.section}]")]
            return []
        if not field_def.accepts(value):
            return [self._error(field_def.name, f"Expected {field_def.type_name}, got {type(value).__name__}")]

        errors = []
        if field_def.choices is not None and value not in field_def.choices:
            options = ", ".join(repr(c) for c in field_def.choices)
            errors.append(self._error(field_def.name, f"Invalid value {value!r}", f"Valid options: {options}"))
        if field_def.check is not None:
            errors.extend(self._error(field_def.name, message) for message in field_def.check(value))
        return errors

    def _error(self, key: str, message: str, hint: str = "") -> str:
        return format_config_error(self.section, key, message, hint)

    def warn_unknown_keys(self, schema: ConfigItems) -> list[str]:
        """Log a warning for each key the schema does not know.

        Returns:
            The warning messages
        """
        warnings = []
        for key in self.config:
            if key in schema.by_name:
                continue
            similar = schema.closest(key)
            if similar:
                msg = f"[{self.section}] Unknown option '{key}' (did you mean '{similar}'?)"
            else:
                msg = f"[{self.section}] Unknown option '{key}' - will be ignored"
            self.log.warning(msg)
            warnings.append(msg)
        return warnings
