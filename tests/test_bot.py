import asyncio

import pytest
import pytest_asyncio

from rivetbot.bot import RivetBot, emoji_key
from rivetbot.config import Configuration
from rivetbot.http import HTTPError
from rivetbot.storage import reaction_roles_key
from rivetbot.types import BotError
from rivetbot.validation import BOT_SCHEMA

from .testtools import APP_ID, BOT_ID, CHANNEL_ID, GUILD_ID, MESSAGE_ID, USER_ID, make_interaction, make_message, make_user

ROLE_ID = 66


async def settle(bot):
    "Waits for every event task"
    while bot.tasks:
        await asyncio.gather(*list(bot.tasks))


@pytest.fixture
def bot(settings, commands, http):
    http.current_user.return_value = make_user(BOT_ID, "rivetbot", bot=True)
    http.current_application.return_value = {"id": str(APP_ID), "name": "rivetbot"}
    return RivetBot("token", settings, commands, http=http)


@pytest_asyncio.fixture
async def ready_bot(bot):
    await bot.initialize()
    return bot


def reaction(emoji, user_id=USER_ID, **extra):
    data = {
        "guild_id": str(GUILD_ID),
        "channel_id": str(CHANNEL_ID),
        "message_id": str(MESSAGE_ID),
        "user_id": str(user_id),
        "emoji": emoji,
        "member": {"user": make_user(user_id), "roles": []},
    }
    data.update(extra)
    return data


async def seed_reaction_roles(bot):
    def _seed(guild):
        guild.reaction_roles[reaction_roles_key(CHANNEL_ID, MESSAGE_ID)] = {"👍": ROLE_ID, "blob:55": ROLE_ID + 1}

    await bot.config.update_guild(GUILD_ID, _seed)


def test_emoji_key():
    assert emoji_key({"name": "👍", "id": None}) == "👍"
    assert emoji_key({"name": "blob", "id": "55"}) == "blob:55"
    assert emoji_key({"name": None, "id": "55"}) == ":55"


@pytest.mark.asyncio
async def test_initialize(ready_bot):
    assert ready_bot.ctx.user_id == BOT_ID
    assert ready_bot.ctx.application_id == APP_ID
    assert ready_bot.cache.current_user["id"] == str(BOT_ID)


@pytest.mark.asyncio
async def test_initialize_failure(bot, http):
    http.current_user.side_effect = HTTPError(401, "GET", "/users/@me")
    with pytest.raises(BotError):
        await bot.initialize()


@pytest.mark.asyncio
async def test_ready_registers_commands(ready_bot, http, commands):
    await ready_bot.handle_event("READY", {"user": make_user(BOT_ID, bot=True), "session_id": "s", "guilds": []})
    await settle(ready_bot)
    http.set_global_commands.assert_awaited_once_with(APP_ID, commands.schemas())


@pytest.mark.asyncio
async def test_message_runs_command(ready_bot, http):
    message = make_message("!ping", guild_id=None)
    await ready_bot.handle_event("MESSAGE_CREATE", message)
    assert ready_bot.cache.message(MESSAGE_ID) is message
    await settle(ready_bot)
    http.create_message.assert_awaited_once_with(CHANNEL_ID, "Pong!", reply_to=MESSAGE_ID)


@pytest.mark.asyncio
async def test_bots_are_ignored(ready_bot, http):
    message = make_message("!ping")
    message["author"]["bot"] = True
    await ready_bot.handle_event("MESSAGE_CREATE", message)
    await settle(ready_bot)
    http.create_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_interaction(ready_bot, http):
    await ready_bot.handle_event("INTERACTION_CREATE", make_interaction("ping"))
    await settle(ready_bot)
    http.update_response.assert_awaited_once_with(APP_ID, "tok", "Pong!")


@pytest.mark.asyncio
async def test_unhandled_event(ready_bot):
    await ready_bot.handle_event("TYPING_START", {"channel_id": "1"})
    assert not ready_bot.tasks


@pytest.mark.asyncio
async def test_failing_handler_is_contained(ready_bot, http):
    http.set_global_commands.side_effect = HTTPError(400, "PUT", "/applications")
    await ready_bot.handle_event("READY", {"user": make_user(BOT_ID, bot=True), "session_id": "s"})
    await settle(ready_bot)


class TestWhitelist:
    @pytest.fixture
    def settings(self, tmp_path, test_logger):
        return Configuration({"data_dir": str(tmp_path), "whitelist": [GUILD_ID]}, logger=test_logger, schema=BOT_SCHEMA)

    @pytest.mark.asyncio
    async def test_leaves_other_guilds(self, ready_bot, http):
        await ready_bot.handle_event("GUILD_CREATE", {"id": "1", "name": "intruder"})
        await ready_bot.handle_event("GUILD_CREATE", {"id": str(GUILD_ID), "name": "home"})
        await settle(ready_bot)
        http.leave_guild.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_no_whitelist_stays(ready_bot, http):
    await ready_bot.handle_event("GUILD_CREATE", {"id": "1", "name": "any"})
    await settle(ready_bot)
    http.leave_guild.assert_not_awaited()


class TestReactionRoles:
    @pytest.mark.asyncio
    async def test_add(self, ready_bot, http):
        await seed_reaction_roles(ready_bot)
        await ready_bot.handle_event("MESSAGE_REACTION_ADD", reaction({"name": "👍", "id": None}))
        await settle(ready_bot)
        http.add_member_role.assert_awaited_once_with(GUILD_ID, USER_ID, ROLE_ID)

    @pytest.mark.asyncio
    async def test_remove_custom_emoji(self, ready_bot, http):
        await seed_reaction_roles(ready_bot)
        data = reaction({"name": "blob", "id": "55"})
        del data["member"]
        await ready_bot.handle_event("MESSAGE_REACTION_REMOVE", data)
        await settle(ready_bot)
        http.remove_member_role.assert_awaited_once_with(GUILD_ID, USER_ID, ROLE_ID + 1)

    @pytest.mark.asyncio
    async def test_unmapped_emoji(self, ready_bot, http):
        await seed_reaction_roles(ready_bot)
        await ready_bot.handle_event("MESSAGE_REACTION_ADD", reaction({"name": "🎉", "id": None}))
        await settle(ready_bot)
        http.add_member_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignored_reactions(self, ready_bot, http):
        await seed_reaction_roles(ready_bot)
        thumbs = {"name": "👍", "id": None}
        own = reaction(thumbs, user_id=BOT_ID)
        other_bot = reaction(thumbs, user_id=77)
        other_bot["member"]["user"]["bot"] = True
        in_dm = reaction(thumbs)
        del in_dm["guild_id"]
        for data in (own, other_bot, in_dm):
            await ready_bot.handle_event("MESSAGE_REACTION_ADD", data)
        await settle(ready_bot)
        http.add_member_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_message_forgets_mapping(self, ready_bot):
        await seed_reaction_roles(ready_bot)
        await ready_bot.handle_event("MESSAGE_DELETE", {"id": str(MESSAGE_ID), "channel_id": str(CHANNEL_ID), "guild_id": str(GUILD_ID)})
        await settle(ready_bot)
        assert await ready_bot.config.reaction_roles(GUILD_ID, CHANNEL_ID, MESSAGE_ID) == {}

    @pytest.mark.asyncio
    async def test_bulk_deleted_messages(self, ready_bot):
        await seed_reaction_roles(ready_bot)
        data = {"ids": ["1", str(MESSAGE_ID)], "channel_id": str(CHANNEL_ID), "guild_id": str(GUILD_ID)}
        await ready_bot.handle_event("MESSAGE_DELETE_BULK", data)
        await settle(ready_bot)
        assert await ready_bot.config.reaction_roles(GUILD_ID, CHANNEL_ID, MESSAGE_ID) == {}


@pytest.mark.asyncio
async def test_stop(ready_bot, http):
    slow = asyncio.Event()

    async def wait_forever():
        await slow.wait()

    task = ready_bot.spawn(wait_forever(), "slow")
    stop = asyncio.create_task(ready_bot.stop())
    await asyncio.sleep(0)
    slow.set()
    await stop
    assert task.done()
    assert ready_bot.gateway.stopped
    http.close.assert_awaited_once()

    await ready_bot.stop()
    http.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_dispatches_gateway_events(ready_bot, mocker, http):
    async def events():
        yield "MESSAGE_CREATE", make_message("!ping", guild_id=None)

    mocker.patch.object(ready_bot.gateway, "events", events)
    await ready_bot.run()
    await settle(ready_bot)
    http.create_message.assert_awaited_once()
