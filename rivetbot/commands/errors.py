"""Handler outcomes: the response model and the command error taxonomy.

A handler returns one of the ``Response`` values or raises a ``CommandError``.
Every other exception escaping a handler is wrapped in ``OtherError`` by the
dispatcher.
"""

from dataclasses import dataclass

__all__ = [
    "CLEAR",
    "NONE",
    "AccessDenied",
    "Clear",
    "CommandError",
    "CreateMessage",
    "Disabled",
    "MissingArgs",
    "MissingReply",
    "NoResponse",
    "NotFound",
    "NotImplementedCommand",
    "NotPrefixed",
    "OtherError",
    "ParseError",
    "Response",
    "UnexpectedArgs",
    "UnknownResource",
]


@dataclass(frozen=True)
class NoResponse:
    """Leave side effects alone."""


@dataclass(frozen=True)
class Clear:
    """Remove the invocation artefact (origin message or deferred response)."""


@dataclass(frozen=True)
class CreateMessage:
    """Post or update with the given text."""

    text: str


Response = NoResponse | Clear | CreateMessage

NONE = NoResponse()
CLEAR = Clear()


class CommandError(Exception):
    """Base class of every error a command invocation can end with."""

    message = "Command failed"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class NotPrefixed(CommandError):
    """The chat line does not start with the command prefix."""

    message = "Not prefixed"


class NotFound(CommandError):
    """No command under that name."""

    message = "Command not found"


class UnknownResource(CommandError):
    """A resource the handler needs does not exist."""

    message = "Unknown resource"


class NotImplementedCommand(CommandError):
    """Placeholder for unfinished handlers."""

    message = "Not implemented"


class MissingReply(CommandError):
    """The handler expected the origin to reply to another message."""

    message = "This command needs to reply to a message"


class MissingArgs(CommandError):
    """A required parameter was not supplied."""

    message = "Missing arguments"


class UnexpectedArgs(CommandError):
    """Arguments have the wrong count or shape."""

    message = "Unexpected arguments"


class ParseError(CommandError):
    """Tokenizing or converting an argument failed."""

    message = "Could not parse arguments"


class Disabled(CommandError):
    """The command is not allowed in this context."""

    message = "Command is disabled here"


class AccessDenied(CommandError):
    """The invoker lacks the required permissions."""

    message = "Access denied"


class OtherError(CommandError):
    """Wraps any other failure, platform errors included."""

    message = "Command error"

    def __init__(self, wrapped: BaseException | str = "") -> None:
        if isinstance(wrapped, BaseException):
            super().__init__(f"{type(wrapped).__name__}: {wrapped}")
            self.__cause__ = wrapped
            self.wrapped: BaseException | None = wrapped
        else:
            super().__init__(wrapped)
            self.wrapped = None
