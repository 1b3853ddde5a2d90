import asyncio
import json

import pytest

from rivetbot.config import Configuration, parse_snowflake
from rivetbot.storage import ConfigStore, GuildSettings, load_settings, reaction_roles_key
from rivetbot.types import BotError
from rivetbot.validation import BOT_SCHEMA, ConfigField, ConfigItems, ConfigValidator, format_config_error

from .testtools import CHANNEL_ID, GUILD_ID


def test_config_access(test_logger):
    conf = Configuration({"a": 1, "b": "test"}, logger=test_logger)
    assert conf["a"] == 1
    assert conf.get("b") == "test"
    assert conf.get("c", 3) == 3
    assert conf.get_str("a") == "1"


def test_schema_defaults(test_logger):
    conf = Configuration({}, logger=test_logger, schema=BOT_SCHEMA)
    assert conf.get_str("prefix") == "!"
    assert conf.get_str("data_dir") == "./data"
    assert conf.get("whitelist") is None
    assert "prefix" not in conf


def test_get_path(test_logger, monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    conf = Configuration({"data_dir": "~/bot"}, logger=test_logger)
    assert conf.get_path("data_dir") == tmp_path / "bot"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(5, 5), ("42", 42), (" 7 ", 7), (0, None), (-3, None), (True, None), ("x1", None), (1.5, None)],
)
def test_parse_snowflake(value, expected):
    assert parse_snowflake(value) == expected


def test_get_snowflake(test_logger):
    conf = Configuration({"a": "12", "b": "nope"}, logger=test_logger)
    assert conf.get_snowflake("a") == 12
    assert conf.get_snowflake("b") is None
    assert conf.get_snowflake("missing") is None


def test_get_snowflakes(test_logger):
    conf = Configuration({"ids": [1, "2", "x"], "one": 3}, logger=test_logger)
    assert conf.get_snowflakes("ids") == [1, 2]
    assert conf.get_snowflakes("one") == [3]
    assert conf.get_snowflakes("missing") is None


class TestValidator:
    def test_valid(self, test_logger):
        config = {"prefix": "?", "whitelist": [1, "2"], "dev_channel": "3"}
        assert ConfigValidator(config, "bot", test_logger).validate(BOT_SCHEMA) == []

    def test_type_error(self, test_logger):
        errors = ConfigValidator({"prefix": 3, "dev_channel": True}, "bot", test_logger).validate(BOT_SCHEMA)
        assert errors == [
            "[bot] Config error for 'prefix': Expected str, got int",
            "[bot] Config error for 'dev_channel': Expected int or str, got bool",
        ]

    def test_custom_checks(self, test_logger):
        errors = ConfigValidator({"prefix": "a b", "whitelist": ["abc"]}, "bot", test_logger).validate(BOT_SCHEMA)
        assert len(errors) == 2
        assert "whitespace" in errors[0]
        assert "'abc' is not a valid id" in errors[1]

    def test_required_and_choices(self, test_logger):
        schema = ConfigItems(ConfigField("mode", required=True, choices=("a", "b")))
        assert "Missing required field" in ConfigValidator({}, "x", test_logger).validate(schema)[0]
        assert "Valid options: 'a', 'b'" in ConfigValidator({"mode": "c"}, "x", test_logger).validate(schema)[0]

    def test_unknown_keys(self, test_logger):
        warnings = ConfigValidator({"prefx": "!", "zzz": 1}, "bot", test_logger).warn_unknown_keys(BOT_SCHEMA)
        assert "did you mean 'prefix'" in warnings[0]
        assert "will be ignored" in warnings[1]

    def test_helpers(self):
        assert BOT_SCHEMA.closest("whitlist") == "whitelist"
        assert BOT_SCHEMA.closest("zzz") is None
        assert BOT_SCHEMA.defaults() == {"prefix": "!", "data_dir": "./data"}
        assert format_config_error("bot", "prefix", "bad", "fix it") == "[bot] Config error for 'prefix': bad -> fix it"


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path, test_logger):
        settings = load_settings(tmp_path / "none.toml", test_logger)
        assert settings.get_str("prefix") == "!"

    def test_bot_section(self, tmp_path, test_logger):
        path = tmp_path / "config.toml"
        path.write_text('[bot]\nprefix = "rb!"\nwhitelist = [1, 2]\n\n[other]\nx = 1\n')
        settings = load_settings(path, test_logger)
        assert settings.get_str("prefix") == "rb!"
        assert settings.get_snowflakes("whitelist") == [1, 2]

    def test_invalid_toml(self, tmp_path, test_logger):
        path = tmp_path / "config.toml"
        path.write_text("[bot\n")
        with pytest.raises(BotError):
            load_settings(path, test_logger)

    def test_invalid_section(self, tmp_path, test_logger):
        path = tmp_path / "config.toml"
        path.write_text("[bot]\nprefix = 1\n")
        with pytest.raises(BotError):
            load_settings(path, test_logger)


def test_guild_settings_from_json():
    settings = GuildSettings.from_json({"prefix": "?", "aliases": {"hi": "ping"}, "reaction_roles": {"1.2": {"x": "5"}}, "extra": 1})
    assert settings == GuildSettings("?", {"hi": "ping"}, {"1.2": {"x": 5}})
    assert GuildSettings.from_json(settings.to_json()) == settings


class TestConfigStore:
    @pytest.mark.asyncio
    async def test_defaults(self, store):
        assert await store.classic_prefix(None) == "!"
        assert await store.classic_prefix(GUILD_ID) == "!"
        assert await store.aliases(None) == {}
        assert await store.aliases(GUILD_ID) == {}
        assert store.whitelist is None
        assert store.dev_channel is None

    @pytest.mark.asyncio
    async def test_update_persists(self, settings, store, test_logger, tmp_path):
        def _update(guild):
            guild.prefix = "?"
            guild.aliases["hi"] = "ping"
            return "done"

        assert await store.update_guild(GUILD_ID, _update) == "done"
        assert await store.classic_prefix(GUILD_ID) == "?"
        path = tmp_path / "guilds" / f"{GUILD_ID}.json"
        assert json.loads(path.read_text())["prefix"] == "?"

        reloaded = ConfigStore(settings, test_logger)
        assert await reloaded.classic_prefix(GUILD_ID) == "?"
        assert await reloaded.aliases(GUILD_ID) == {"hi": "ping"}

    @pytest.mark.asyncio
    async def test_copies_are_detached(self, store):
        copy = await store.guild_settings(GUILD_ID)
        copy.aliases["x"] = "ping"
        assert await store.aliases(GUILD_ID) == {}

    @pytest.mark.asyncio
    async def test_concurrent_updates(self, settings, store, test_logger):
        def setter(n):
            def _set(guild):
                guild.aliases[f"a{n}"] = "ping"

            return _set

        await asyncio.gather(*(store.update_guild(GUILD_ID, setter(n)) for n in range(8)))
        expected = {f"a{n}": "ping" for n in range(8)}
        assert await store.aliases(GUILD_ID) == expected
        reloaded = ConfigStore(settings, test_logger)
        assert await reloaded.aliases(GUILD_ID) == expected

    @pytest.mark.asyncio
    async def test_failed_save_keeps_memory(self, store, tmp_path):
        (tmp_path / "guilds").write_text("not a directory")

        def _add(guild):
            guild.aliases["hi"] = "ping"

        with pytest.raises(OSError):
            await store.update_guild(GUILD_ID, _add)
        assert await store.aliases(GUILD_ID) == {}

    @pytest.mark.asyncio
    async def test_invalid_document(self, store, tmp_path):
        (tmp_path / "guilds").mkdir()
        (tmp_path / "guilds" / f"{GUILD_ID}.json").write_text("{not json")
        assert await store.classic_prefix(GUILD_ID) == "!"

    @pytest.mark.asyncio
    async def test_reaction_roles(self, store):
        def _seed(guild):
            guild.reaction_roles[reaction_roles_key(CHANNEL_ID, 1)] = {"👍": 10}
            guild.reaction_roles[reaction_roles_key(CHANNEL_ID, 2)] = {"x:55": 11}

        await store.update_guild(GUILD_ID, _seed)
        assert await store.reaction_roles(GUILD_ID, CHANNEL_ID, 1) == {"👍": 10}
        assert await store.reaction_roles(GUILD_ID, CHANNEL_ID, 3) == {}

        assert await store.remove_reaction_roles(GUILD_ID, CHANNEL_ID, [1, 3]) is True
        assert await store.reaction_roles(GUILD_ID, CHANNEL_ID, 1) == {}
        assert await store.reaction_roles(GUILD_ID, CHANNEL_ID, 2) == {"x:55": 11}
        assert await store.remove_reaction_roles(GUILD_ID, CHANNEL_ID, [1]) is False

    def test_settings_properties(self, tmp_path, test_logger):
        settings = Configuration({"whitelist": [GUILD_ID], "dev_channel": str(CHANNEL_ID)}, logger=test_logger, schema=BOT_SCHEMA)
        store = ConfigStore(settings, test_logger)
        assert store.whitelist == [GUILD_ID]
        assert store.dev_channel == CHANNEL_ID
        assert store.global_prefix == "!"
