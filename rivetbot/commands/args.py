"""Typed argument values and their conversions.

Values come from two sources: free-text tokens of a chat line
(``ArgValue.from_kind``) and option values of an interaction payload
(``ArgValue.from_interaction_option``). Both produce the same immutable
``ArgValue`` which handlers read through the typed accessors of ``Args``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..types import ChannelType, OptionInfo, OptionType, ResolvedInfo
from .errors import MissingArgs, ParseError, UnexpectedArgs

__all__ = [
    "Arg",
    "ArgKind",
    "ArgType",
    "ArgValue",
    "Args",
    "ArgumentTypeMismatch",
    "MissingArgument",
    "Ref",
    "parse_id",
]


class ArgType(StrEnum):
    """The kinds of parameter a command can declare."""

    BOOL = "bool"
    NUMBER = "number"
    INTEGER = "integer"
    STRING = "string"
    CHANNEL = "channel"
    MESSAGE = "message"
    ATTACHMENT = "attachment"
    USER = "user"
    ROLE = "role"
    MENTION = "mention"


OPTION_TYPES: dict[ArgType, OptionType] = {
    ArgType.BOOL: OptionType.BOOLEAN,
    ArgType.NUMBER: OptionType.NUMBER,
    ArgType.INTEGER: OptionType.INTEGER,
    ArgType.STRING: OptionType.STRING,
    ArgType.CHANNEL: OptionType.CHANNEL,
    # messages have no option type, they travel as identifiers in a string
    ArgType.MESSAGE: OptionType.STRING,
    ArgType.ATTACHMENT: OptionType.ATTACHMENT,
    ArgType.USER: OptionType.USER,
    ArgType.ROLE: OptionType.ROLE,
    ArgType.MENTION: OptionType.MENTIONABLE,
}

_ARG_TYPES: dict[OptionType, ArgType] = {v: k for k, v in OPTION_TYPES.items() if k != ArgType.MESSAGE}

# resolved buckets to look into, per option type
_RESOLVED_BUCKETS: dict[OptionType, tuple[str, ...]] = {
    OptionType.USER: ("users",),
    OptionType.CHANNEL: ("channels",),
    OptionType.ROLE: ("roles",),
    OptionType.MENTIONABLE: ("users", "roles"),
    OptionType.ATTACHMENT: ("attachments",),
}

_MENTIONS: dict[ArgType, re.Pattern[str]] = {
    ArgType.CHANNEL: re.compile(r"^<#(\d+)>$"),
    ArgType.USER: re.compile(r"^<@!?(\d+)>$"),
    ArgType.ROLE: re.compile(r"^<@&(\d+)>$"),
    ArgType.MENTION: re.compile(r"^<@[!&]?(\d+)>$"),
}


def parse_id(text: str) -> int:
    """Parse a bare platform identifier.

    Args:
        text: The token to parse

    Raises:
        ParseError: if the token is not a positive integer
    """
    if not text.isdigit():
        msg = f"'{text}' is not an identifier"
        raise ParseError(msg)
    value = int(text)
    if value == 0:
        msg = "identifier cannot be zero"
        raise ParseError(msg)
    return value


def _parse_mention(kind: ArgType, text: str) -> int:
    match = _MENTIONS[kind].match(text)
    if match is None:
        msg = f"'{text}' is not a {kind} mention"
        raise ParseError(msg)
    return int(match.group(1))


@dataclass(frozen=True, eq=False)
class Ref:
    """Either a bare identifier or a resolved platform object.

    Consumers read ``id`` regardless of which one is held; two references to
    the same identifier compare equal.
    """

    value: int | dict[str, Any]

    @classmethod
    def from_id(cls, value: int | str) -> Ref:
        """Build a reference holding only an identifier."""
        return cls(int(value))

    @classmethod
    def from_obj(cls, obj: dict[str, Any]) -> Ref:
        """Build a reference holding a resolved object."""
        return cls(obj)

    @property
    def id(self) -> int:
        """The identifier of the referenced entity."""
        if isinstance(self.value, dict):
            return int(self.value["id"])
        return self.value

    @property
    def obj(self) -> dict[str, Any] | None:
        """The resolved object, if any."""
        return self.value if isinstance(self.value, dict) else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ref):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Ref({self.id}{', resolved' if self.obj is not None else ''})"


@dataclass(frozen=True)
class ArgKind:  # pylint: disable=too-many-instance-attributes
    """A parameter kind with its optional constraints.

    Attributes:
        type: The kind of value
        min_value: Lowest accepted number (Number, Integer)
        max_value: Highest accepted number (Number, Integer)
        min_length: Shortest accepted text (String)
        max_length: Longest accepted text (String)
        choices: Named values the argument is restricted to
        channel_types: Channel types accepted (Channel)
    """

    type: ArgType
    min_value: float | None = None
    max_value: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    choices: tuple[tuple[str, str | int | float], ...] | None = None
    channel_types: frozenset[ChannelType] | None = None

    def check(self, value: ArgValue) -> None:
        """Check a converted value against the declared bounds.

        Raises:
            ParseError: if a bound or the choice set is violated
        """
        raw = value.value
        if self.type in (ArgType.NUMBER, ArgType.INTEGER):
            if self.min_value is not None and raw < self.min_value:
                msg = f"{raw} is lower than {self.min_value}"
                raise ParseError(msg)
            if self.max_value is not None and raw > self.max_value:
                msg = f"{raw} is greater than {self.max_value}"
                raise ParseError(msg)
        if self.type == ArgType.STRING:
            if self.min_length is not None and len(raw) < self.min_length:
                msg = f"'{raw}' is shorter than {self.min_length} characters"
                raise ParseError(msg)
            if self.max_length is not None and len(raw) > self.max_length:
                msg = f"'{raw}' is longer than {self.max_length} characters"
                raise ParseError(msg)
        if self.choices is not None and raw not in [v for _, v in self.choices]:
            names = ", ".join(name for name, _ in self.choices)
            msg = f"'{raw}' is not one of: {names}"
            raise ParseError(msg)
        if self.channel_types and isinstance(raw, Ref) and raw.obj is not None and "type" in raw.obj:
            if raw.obj["type"] not in self.channel_types:
                msg = f"channel <#{raw.id}> has a wrong type"
                raise ParseError(msg)


@dataclass(frozen=True)
class ArgValue:
    """A parsed argument value tagged with its kind."""

    type: ArgType
    value: bool | float | int | str | Ref

    @classmethod
    def from_kind(cls, kind: ArgKind | ArgType, text: str) -> ArgValue:
        """Parse a raw text token into a typed value.

        Bounds are not enforced here, see ``ArgKind.check``.

        Args:
            kind: The kind of the parameter receiving the token
            text: The raw token

        Raises:
            ParseError: if the token cannot be converted
        """
        arg_type = kind.type if isinstance(kind, ArgKind) else kind
        if arg_type == ArgType.BOOL:
            lowered = text.lower()
            if lowered not in ("true", "false"):
                msg = f"'{text}' is not a boolean"
                raise ParseError(msg)
            return cls(arg_type, lowered == "true")
        if arg_type == ArgType.INTEGER:
            try:
                return cls(arg_type, int(text))
            except ValueError as e:
                msg = f"'{text}' is not an integer"
                raise ParseError(msg) from e
        if arg_type == ArgType.NUMBER:
            try:
                number = float(text)
            except ValueError as e:
                msg = f"'{text}' is not a number"
                raise ParseError(msg) from e
            if not math.isfinite(number):
                msg = f"'{text}' is not a finite number"
                raise ParseError(msg)
            return cls(arg_type, number)
        if arg_type == ArgType.STRING:
            return cls(arg_type, text)
        if arg_type == ArgType.MESSAGE:
            return cls(arg_type, Ref.from_id(parse_id(text)))
        if arg_type == ArgType.ATTACHMENT:
            msg = "attachments cannot be given as text"
            raise ParseError(msg)
        try:
            return cls(arg_type, Ref.from_id(_parse_mention(arg_type, text)))
        except ParseError as mention_error:
            try:
                return cls(arg_type, Ref.from_id(parse_id(text)))
            except ParseError as id_error:
                msg = f"{mention_error.detail}; {id_error.detail}"
                raise ParseError(msg) from id_error

    @classmethod
    def from_interaction_option(cls, option: OptionInfo, resolved: ResolvedInfo | None = None) -> ArgValue:
        """Convert an interaction option value.

        Args:
            option: The option as sent by the platform
            resolved: The interaction's resolved objects

        Raises:
            UnexpectedArgs: for subcommand and group options
        """
        option_type = OptionType(option["type"])
        if option_type in (OptionType.SUB_COMMAND, OptionType.SUB_COMMAND_GROUP):
            msg = f"'{option['name']}' is a subcommand, not an argument"
            raise UnexpectedArgs(msg)
        arg_type = _ARG_TYPES[option_type]
        raw = option.get("value")
        if raw is None:
            msg = f"option '{option['name']}' has no value"
            raise MissingArgs(msg)
        if arg_type == ArgType.BOOL:
            return cls(arg_type, bool(raw))
        if arg_type == ArgType.INTEGER:
            return cls(arg_type, int(raw))
        if arg_type == ArgType.NUMBER:
            return cls(arg_type, float(raw))
        if arg_type == ArgType.STRING:
            return cls(arg_type, str(raw))
        resolved = resolved or {}
        for bucket in _RESOLVED_BUCKETS[option_type]:
            obj = resolved.get(bucket, {}).get(str(raw))  # type: ignore[attr-defined]
            if obj is not None:
                return cls(arg_type, Ref.from_obj(obj))
        return cls(arg_type, Ref.from_id(raw))  # type: ignore[arg-type]


class MissingArgument(MissingArgs, LookupError):
    """No argument under the requested name."""


class ArgumentTypeMismatch(ParseError, TypeError):
    """The argument exists but holds another kind of value."""


@dataclass(frozen=True)
class Arg:
    """A named argument value."""

    name: str
    value: ArgValue


@dataclass
class Args:
    """Parsed arguments, in declaration order.

    Attributes:
        items: The arguments
        skipped: Optional parameters which failed to parse, with the error
    """

    items: list[Arg] = field(default_factory=list)
    skipped: list[tuple[str, ParseError]] = field(default_factory=list, compare=False)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, ArgValue]]) -> Args:
        """Build from ``(name, value)`` pairs."""
        return cls([Arg(name, value) for name, value in pairs])

    def push(self, name: str, value: ArgValue) -> None:
        """Append an argument."""
        self.items.append(Arg(name, value))

    def get(self, name: str) -> ArgValue | None:
        """Return the raw value for `name`, if present."""
        for arg in self.items:
            if arg.name == name:
                return arg.value
        return None

    def __contains__(self, name: object) -> bool:
        return any(arg.name == name for arg in self.items)

    def __iter__(self) -> Iterator[Arg]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def _typed(self, name: str, arg_type: ArgType) -> Any:  # noqa: ANN401
        value = self.get(name)
        if value is None:
            raise MissingArgument(name)
        if value.type != arg_type:
            msg = f"'{name}' is a {value.type}, not a {arg_type}"
            raise ArgumentTypeMismatch(msg)
        return value.value

    def get_bool(self, name: str) -> bool:
        """Return the boolean argument `name`."""
        return bool(self._typed(name, ArgType.BOOL))

    def get_number(self, name: str) -> float:
        """Return the number argument `name`."""
        return float(self._typed(name, ArgType.NUMBER))

    def get_integer(self, name: str) -> int:
        """Return the integer argument `name`."""
        return int(self._typed(name, ArgType.INTEGER))

    def get_string(self, name: str) -> str:
        """Return the string argument `name`."""
        return str(self._typed(name, ArgType.STRING))

    def get_channel(self, name: str) -> Ref:
        """Return the channel argument `name`."""
        return self._typed(name, ArgType.CHANNEL)  # type: ignore[no-any-return]

    def get_message(self, name: str) -> Ref:
        """Return the message argument `name`."""
        return self._typed(name, ArgType.MESSAGE)  # type: ignore[no-any-return]

    def get_attachment(self, name: str) -> Ref:
        """Return the attachment argument `name`."""
        return self._typed(name, ArgType.ATTACHMENT)  # type: ignore[no-any-return]

    def get_user(self, name: str) -> Ref:
        """Return the user argument `name`."""
        return self._typed(name, ArgType.USER)  # type: ignore[no-any-return]

    def get_role(self, name: str) -> Ref:
        """Return the role argument `name`."""
        return self._typed(name, ArgType.ROLE)  # type: ignore[no-any-return]

    def get_mention(self, name: str) -> Ref:
        """Return the mentionable argument `name`."""
        return self._typed(name, ArgType.MENTION)  # type: ignore[no-any-return]
