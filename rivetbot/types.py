"""Common types from the Discord API."""

from enum import IntEnum, IntFlag, StrEnum
from typing import NotRequired, TypedDict

__all__ = [
    "AttachmentInfo",
    "BotError",
    "ChannelInfo",
    "ChannelType",
    "CommandDataInfo",
    "CommandType",
    "ExitCode",
    "InteractionInfo",
    "InteractionResponseType",
    "InteractionType",
    "JSONResponse",
    "MemberInfo",
    "MessageFlags",
    "MessageInfo",
    "OptionInfo",
    "OptionType",
    "OverwriteInfo",
    "Permissions",
    "ResolvedInfo",
    "RoleInfo",
    "UserInfo",
]

PlainTypes = float | str | bool | None | dict[str, "PlainTypes"] | list["PlainTypes"]
JSONResponse = dict[str, PlainTypes] | list[dict[str, PlainTypes]]


class UserInfo(TypedDict):
    """User object as returned by Discord."""

    id: str
    username: str
    discriminator: NotRequired[str]
    global_name: NotRequired[str | None]
    avatar: NotRequired[str | None]
    bot: NotRequired[bool]


class MemberInfo(TypedDict):
    """Guild member object."""

    user: NotRequired[UserInfo]
    nick: NotRequired[str | None]
    roles: list[str]
    permissions: NotRequired[str]


class RoleInfo(TypedDict):
    """Guild role object."""

    id: str
    name: str
    permissions: str
    position: int


class OverwriteInfo(TypedDict):
    """Channel permission overwrite (type 0 is a role, 1 a member)."""

    id: str
    type: int
    allow: str
    deny: str


class ChannelInfo(TypedDict):
    """Channel object."""

    id: str
    type: int
    guild_id: NotRequired[str]
    name: NotRequired[str]
    permission_overwrites: NotRequired[list[OverwriteInfo]]


class AttachmentInfo(TypedDict):
    """Message attachment."""

    id: str
    filename: str
    url: str
    size: int


class MessageReferenceInfo(TypedDict):
    """Reply reference carried by a message."""

    message_id: NotRequired[str]
    channel_id: NotRequired[str]
    guild_id: NotRequired[str]


class MessageInfo(TypedDict):
    """Message object as delivered by MESSAGE_CREATE."""

    id: str
    channel_id: str
    guild_id: NotRequired[str]
    author: UserInfo
    member: NotRequired[MemberInfo]
    content: str
    timestamp: str
    attachments: list[AttachmentInfo]
    message_reference: NotRequired[MessageReferenceInfo]
    referenced_message: NotRequired["MessageInfo | None"]


class OptionInfo(TypedDict):
    """Application command interaction data option."""

    name: str
    type: int
    value: NotRequired[str | int | float | bool]
    options: NotRequired[list["OptionInfo"]]


class ResolvedInfo(TypedDict, total=False):
    """Objects resolved by Discord for an interaction, keyed by id."""

    users: dict[str, UserInfo]
    members: dict[str, MemberInfo]
    roles: dict[str, RoleInfo]
    channels: dict[str, ChannelInfo]
    messages: dict[str, MessageInfo]
    attachments: dict[str, AttachmentInfo]


class CommandDataInfo(TypedDict):
    """Data of an application command interaction."""

    id: str
    name: str
    type: int
    options: NotRequired[list[OptionInfo]]
    resolved: NotRequired[ResolvedInfo]
    target_id: NotRequired[str]


class InteractionInfo(TypedDict):
    """Interaction object as delivered by INTERACTION_CREATE."""

    id: str
    application_id: str
    type: int
    token: str
    data: NotRequired[CommandDataInfo]
    guild_id: NotRequired[str]
    channel_id: NotRequired[str]
    member: NotRequired[MemberInfo]
    user: NotRequired[UserInfo]


class ChannelType(IntEnum):
    """Channel types."""

    GUILD_TEXT = 0
    DM = 1
    GUILD_VOICE = 2
    GROUP_DM = 3
    GUILD_CATEGORY = 4
    GUILD_ANNOUNCEMENT = 5
    ANNOUNCEMENT_THREAD = 10
    PUBLIC_THREAD = 11
    PRIVATE_THREAD = 12
    GUILD_STAGE_VOICE = 13
    GUILD_FORUM = 15


class CommandType(IntEnum):
    """Application command types."""

    CHAT_INPUT = 1
    USER = 2
    MESSAGE = 3


class OptionType(IntEnum):
    """Application command option types."""

    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class InteractionType(IntEnum):
    """Interaction types."""

    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class InteractionResponseType(IntEnum):
    """Interaction callback types."""

    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5


class MessageFlags(IntFlag):
    """Message flags used in interaction responses."""

    EPHEMERAL = 1 << 6
    LOADING = 1 << 7


class Permissions(IntFlag):
    """Permission bits."""

    CREATE_INSTANT_INVITE = 1 << 0
    KICK_MEMBERS = 1 << 1
    BAN_MEMBERS = 1 << 2
    ADMINISTRATOR = 1 << 3
    MANAGE_CHANNELS = 1 << 4
    MANAGE_GUILD = 1 << 5
    ADD_REACTIONS = 1 << 6
    VIEW_AUDIT_LOG = 1 << 7
    VIEW_CHANNEL = 1 << 10
    SEND_MESSAGES = 1 << 11
    MANAGE_MESSAGES = 1 << 13
    EMBED_LINKS = 1 << 14
    ATTACH_FILES = 1 << 15
    READ_MESSAGE_HISTORY = 1 << 16
    MENTION_EVERYONE = 1 << 17
    CONNECT = 1 << 20
    SPEAK = 1 << 21
    MUTE_MEMBERS = 1 << 22
    MOVE_MEMBERS = 1 << 24
    MANAGE_ROLES = 1 << 28
    MODERATE_MEMBERS = 1 << 40

    @classmethod
    def all(cls) -> "Permissions":
        """Return every known permission bit."""
        value = cls(0)
        for member in cls:
            value |= member
        return value


class BotError(BaseException):
    """Used for errors which already triggered logging."""


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    USAGE_ERROR = 1  # Invalid command line
    ENV_ERROR = 2  # Missing environment variables
    CONFIG_ERROR = 3  # Invalid configuration or command registry
    CONNECTION_ERROR = 4  # Cannot reach Discord
