import pytest

from rivetbot.commands import (
    NONE,
    Args,
    ArgType,
    ArgValue,
    CommandsBuilder,
    MessageRequest,
    MissingArgs,
    NotFound,
    ParseError,
    Ref,
    SlashRequest,
    UnexpectedArgs,
    UserRequest,
    Variant,
    command,
    decode_interaction,
    encode_command_data,
    group,
    integer,
    message,
    number,
    string,
    sub,
    user,
)
from rivetbot.types import CommandType, OptionType

from .testtools import make_option


async def slash(ctx, req: SlashRequest):
    return NONE


async def on_message(ctx, req: MessageRequest):
    return NONE


async def on_user(ctx, req: UserRequest):
    return NONE


@pytest.fixture
def registry():
    return (
        CommandsBuilder()
        .bind(
            command("fuel", "Fuel.")
            .attach(slash)
            .option(integer("stint", "S.").required().min(1))
            .option(number("seconds", "S.").required().min(0.0).max(59.9999))
            .option(string("note", "N."))
        )
        .bind(
            command("admin", "Admin.")
            .option(group("roles", "Roles.").option(sub("add", "Add.").attach(slash).option(user("who", "Who.").required())))
            .option(sub("pick", "Pick.").attach(slash).option(message("message", "M.").required()))
        )
        .bind(command("Quote", "Quote.").attach(on_message))
        .bind(command("Inspect", "Inspect.").attach(on_user))
        .build()
    )


def data(name, options=None, **extra):
    payload = {"id": "1", "name": name, "type": CommandType.CHAT_INPUT, **extra}
    if options is not None:
        payload["options"] = options
    return payload


def test_simple(registry):
    invocation = decode_interaction(
        registry,
        data("fuel", [make_option("stint", OptionType.INTEGER, 60), make_option("seconds", OptionType.NUMBER, 30)]),
    )
    assert invocation.variant == Variant.SLASH
    assert invocation.path == ("fuel",)
    assert invocation.args.get_integer("stint") == 60
    assert invocation.args.get_number("seconds") == 30.0
    assert "note" not in invocation.args


def test_arguments_follow_declaration_order(registry):
    options = [make_option("note", OptionType.STRING, "x"), make_option("seconds", OptionType.NUMBER, 1.5), make_option("stint", OptionType.INTEGER, 5)]
    invocation = decode_interaction(registry, data("fuel", options))
    assert [arg.name for arg in invocation.args] == ["stint", "seconds", "note"]


def test_unknown_command(registry):
    with pytest.raises(NotFound):
        decode_interaction(registry, data("nope"))


def test_missing_required(registry):
    with pytest.raises(MissingArgs):
        decode_interaction(registry, data("fuel", [make_option("stint", OptionType.INTEGER, 60)]))


def test_out_of_bounds(registry):
    options = [make_option("stint", OptionType.INTEGER, 0), make_option("seconds", OptionType.NUMBER, 1)]
    with pytest.raises(ParseError):
        decode_interaction(registry, data("fuel", options))


def test_wrong_type(registry):
    options = [make_option("stint", OptionType.STRING, "60"), make_option("seconds", OptionType.NUMBER, 1)]
    with pytest.raises(ParseError):
        decode_interaction(registry, data("fuel", options))


def test_unknown_argument(registry):
    options = [make_option("stint", OptionType.INTEGER, 6), make_option("seconds", OptionType.NUMBER, 1), make_option("extra", OptionType.STRING, "?")]
    with pytest.raises(UnexpectedArgs):
        decode_interaction(registry, data("fuel", options))


def test_group_path_with_resolved_user(registry):
    options = [make_option("roles", OptionType.SUB_COMMAND_GROUP, options=[make_option("add", OptionType.SUB_COMMAND, options=[make_option("who", OptionType.USER, "42")])])]
    resolved = {"users": {"42": {"id": "42", "username": "answer"}}}
    invocation = decode_interaction(registry, data("admin", options, resolved=resolved))
    assert invocation.path == ("admin", "roles", "add")
    assert invocation.args.get_user("who").obj["username"] == "answer"


def test_branch_without_subcommand(registry):
    with pytest.raises(UnexpectedArgs):
        decode_interaction(registry, data("admin", []))
    with pytest.raises(UnexpectedArgs):
        decode_interaction(registry, data("admin", [make_option("roles", OptionType.SUB_COMMAND_GROUP, options=[])]))


def test_message_argument_travels_as_string(registry):
    options = [make_option("pick", OptionType.SUB_COMMAND, options=[make_option("message", OptionType.STRING, "123")])]
    invocation = decode_interaction(registry, data("admin", options))
    assert invocation.args.get_message("message") == Ref.from_id(123)


def test_message_target(registry):
    target = {"id": "9", "channel_id": "1", "content": "hi", "author": {"id": "2", "username": "x"}}
    payload = data("Quote", type=CommandType.MESSAGE, target_id="9", resolved={"messages": {"9": target}})
    invocation = decode_interaction(registry, payload)
    assert invocation.variant == Variant.MESSAGE
    assert invocation.target.obj is target
    assert len(invocation.args) == 0


def test_user_target_without_resolved(registry):
    invocation = decode_interaction(registry, data("Inspect", type=CommandType.USER, target_id="5"))
    assert invocation.variant == Variant.USER
    assert invocation.target == Ref.from_id(5)


def test_target_missing(registry):
    with pytest.raises(MissingArgs):
        decode_interaction(registry, data("Quote", type=CommandType.MESSAGE))


def test_wrong_surface(registry):
    with pytest.raises(NotFound):
        decode_interaction(registry, data("Quote", type=CommandType.USER, target_id="5"))


def test_encode_decode(registry):
    args = Args.from_pairs([("who", ArgValue(ArgType.USER, Ref.from_id(42)))])
    encoded = encode_command_data(registry["admin"], ("admin", "roles", "add"), args)
    invocation = decode_interaction(registry, encoded)
    assert invocation.path == ("admin", "roles", "add")
    assert invocation.args == args
