"""Command model, builders, validator, parsers and handler registry."""

from .args import Arg, ArgKind, Args, ArgType, ArgValue, ArgumentTypeMismatch, MissingArgument, Ref
from .builder import attachment, boolean, channel, command, group, integer, mention, message, number, role, string, sub, user
from .errors import (
    CLEAR,
    NONE,
    AccessDenied,
    Clear,
    CommandError,
    CreateMessage,
    Disabled,
    MissingArgs,
    MissingReply,
    NoResponse,
    NotFound,
    NotImplementedCommand,
    NotPrefixed,
    OtherError,
    ParseError,
    Response,
    UnexpectedArgs,
    UnknownResource,
)
from .handlers import Handler, HandlerSet, Variant, infer_variants
from .interaction import InteractionInvocation, decode_interaction, encode_command_data
from .models import ArgDesc, BaseCommand, CommandGroup, CommandNode
from .parsing import ClassicInvocation, format_invocation, parse_args, parse_classic
from .registry import Commands, CommandsBuilder
from .requests import ClassicRequest, MessageRequest, Request, SlashRequest, UserRequest
from .tree import render_command_help, render_command_tree
from .validation import CommandValidationError, ValidationRule

__all__ = [
    "CLEAR",
    "NONE",
    "AccessDenied",
    "Arg",
    "ArgDesc",
    "ArgKind",
    "ArgType",
    "ArgValue",
    "Args",
    "ArgumentTypeMismatch",
    "BaseCommand",
    "ClassicInvocation",
    "ClassicRequest",
    "Clear",
    "CommandError",
    "CommandGroup",
    "CommandNode",
    "CommandValidationError",
    "Commands",
    "CommandsBuilder",
    "CreateMessage",
    "Disabled",
    "Handler",
    "HandlerSet",
    "InteractionInvocation",
    "MessageRequest",
    "MissingArgs",
    "MissingArgument",
    "MissingReply",
    "NoResponse",
    "NotFound",
    "NotImplementedCommand",
    "NotPrefixed",
    "OtherError",
    "ParseError",
    "Ref",
    "Request",
    "Response",
    "SlashRequest",
    "UnexpectedArgs",
    "UnknownResource",
    "UserRequest",
    "ValidationRule",
    "Variant",
    "attachment",
    "boolean",
    "channel",
    "command",
    "decode_interaction",
    "encode_command_data",
    "format_invocation",
    "group",
    "infer_variants",
    "integer",
    "mention",
    "message",
    "number",
    "parse_args",
    "parse_classic",
    "render_command_help",
    "render_command_tree",
    "role",
    "string",
    "sub",
    "user",
]
