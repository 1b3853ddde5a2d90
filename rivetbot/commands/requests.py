"""Per-variant request records passed to handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..types import InteractionInfo, MessageInfo
    from .args import Args, Ref
    from .models import BaseCommand

__all__ = [
    "ClassicRequest",
    "MessageRequest",
    "Request",
    "SlashRequest",
    "UserRequest",
]


@dataclass(frozen=True)
class ClassicRequest:
    """A command typed in a chat message."""

    command: BaseCommand
    args: Args
    message: MessageInfo


@dataclass(frozen=True)
class SlashRequest:
    """A chat-input application command."""

    command: BaseCommand
    args: Args
    interaction: InteractionInfo


@dataclass(frozen=True)
class MessageRequest:
    """A message-target application command."""

    command: BaseCommand
    args: Args
    interaction: InteractionInfo
    target: Ref


@dataclass(frozen=True)
class UserRequest:
    """A user-target application command."""

    command: BaseCommand
    args: Args
    interaction: InteractionInfo
    target: Ref


Request = ClassicRequest | SlashRequest | MessageRequest | UserRequest
