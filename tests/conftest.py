" generic fixtures "
from unittest.mock import AsyncMock

import pytest

from rivetbot.cache import InMemoryCache
from rivetbot.config import Configuration
from rivetbot.context import Context
from rivetbot.http import DiscordHTTP
from rivetbot.logging_setup import get_logger
from rivetbot.plugins import create_commands
from rivetbot.storage import ConfigStore
from rivetbot.validation import BOT_SCHEMA

from .testtools import APP_ID, BOT_ID, CHANNEL_ID, GUILD_ID, make_user


def pytest_configure():
    "Runs once before all"
    from rivetbot.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    "A logger for the tests"
    return get_logger("tests")


@pytest.fixture
def settings(tmp_path, test_logger):
    "Bot settings storing guild data in a temporary folder"
    return Configuration({"prefix": "!", "data_dir": str(tmp_path)}, logger=test_logger, schema=BOT_SCHEMA)


@pytest.fixture
def store(settings, test_logger):
    return ConfigStore(settings, test_logger)


@pytest.fixture
def http():
    "Mocked Discord REST client"
    client = AsyncMock(spec=DiscordHTTP)
    client.create_message.return_value = {"id": "1234", "channel_id": str(CHANNEL_ID)}
    client.channel_messages.return_value = []
    client.roles.return_value = [{"id": str(GUILD_ID), "name": "@everyone", "permissions": "0", "position": 0}]
    client.channel.return_value = {"id": str(CHANNEL_ID), "type": 0, "guild_id": str(GUILD_ID)}
    client.user.side_effect = make_user
    client.guild_member.return_value = {"roles": []}
    return client


@pytest.fixture
def commands():
    "The bundled command registry"
    return create_commands()


@pytest.fixture
def ctx(store, http, commands, test_logger):
    "A bot context wired to mocks"
    return Context(
        config=store,
        http=http,
        cache=InMemoryCache(),
        commands=commands,
        application_id=APP_ID,
        user=make_user(BOT_ID, "rivetbot", bot=True),
        log=test_logger,
    )
