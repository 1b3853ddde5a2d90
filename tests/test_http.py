"""Tests for the Discord REST client."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from rivetbot.constants import API_BASE, HTTP_RETRIES
from rivetbot.http import DiscordHTTP, HTTPError
from rivetbot.types import MessageFlags

HTTP_OK = 200
HTTP_NO_CONTENT = 204
HTTP_NOT_FOUND = 404
HTTP_RATE_LIMITED = 429


class FakeResponse:
    def __init__(self, status, body=None, content_type="application/json"):
        self.status = status
        self.body = body
        self.content_type = content_type

    async def json(self):
        return self.body

    async def text(self):
        return self.body or ""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    "Replays canned responses and records requests"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def request(self, method, url, json=None, params=None):
        self.calls.append((method, url, json, params))
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


@pytest.fixture
def sleep(mocker):
    return mocker.patch("asyncio.sleep", new_callable=AsyncMock)


def client(*responses):
    session = FakeSession(*responses)
    return DiscordHTTP("token", logger=MagicMock(), session=session), session


@pytest.mark.asyncio
async def test_json_body():
    http, session = client(FakeResponse(HTTP_OK, {"id": "1", "username": "bot"}))
    assert await http.current_user() == {"id": "1", "username": "bot"}
    assert session.calls == [("GET", f"{API_BASE}/users/@me", None, None)]


@pytest.mark.asyncio
async def test_no_content():
    http, session = client(FakeResponse(HTTP_NO_CONTENT))
    assert await http.delete_message(1, 2) is None
    assert session.calls[0][:2] == ("DELETE", f"{API_BASE}/channels/1/messages/2")


@pytest.mark.asyncio
async def test_empty_text_body():
    http, _ = client(FakeResponse(HTTP_OK, "", content_type="text/plain"))
    assert await http.request("GET", "/x") is None


@pytest.mark.asyncio
async def test_error_status():
    http, _ = client(FakeResponse(HTTP_NOT_FOUND, {"message": "Unknown Message", "code": 10008}))
    with pytest.raises(HTTPError) as err:
        await http.message(1, 2)
    assert err.value.status == HTTP_NOT_FOUND
    assert err.value.body["code"] == 10008
    assert "GET /channels/1/messages/2" in str(err.value)


@pytest.mark.asyncio
async def test_rate_limit_retry(sleep):
    http, session = client(
        FakeResponse(HTTP_RATE_LIMITED, {"retry_after": 0.25}),
        FakeResponse(HTTP_OK, [{"id": "1"}]),
    )
    assert await http.channel_messages(5, limit=10, before=9) == [{"id": "1"}]
    sleep.assert_awaited_once_with(0.25)
    assert len(session.calls) == 2
    assert session.calls[1][3] == {"limit": 10, "before": "9"}


@pytest.mark.asyncio
async def test_rate_limit_gives_up(sleep):
    responses = [FakeResponse(HTTP_RATE_LIMITED, {"retry_after": 1}) for _ in range(HTTP_RETRIES + 1)]
    http, _ = client(*responses)
    with pytest.raises(HTTPError) as err:
        await http.roles(1)
    assert err.value.status == HTTP_RATE_LIMITED
    assert sleep.await_count == HTTP_RETRIES


@pytest.mark.asyncio
async def test_reply_payload():
    http, session = client(FakeResponse(HTTP_OK, {"id": "3"}))
    await http.create_message(1, "hi", reply_to=2)
    _, _, payload, _ = session.calls[0]
    assert payload["content"] == "hi"
    assert payload["message_reference"] == {"message_id": "2", "fail_if_not_exists": False}
    assert payload["allowed_mentions"] == {"parse": []}


@pytest.mark.asyncio
async def test_deferred_response_payload():
    http, session = client(FakeResponse(HTTP_NO_CONTENT))
    await http.create_response(88, "tok", MessageFlags.EPHEMERAL)
    method, url, payload, _ = session.calls[0]
    assert (method, url) == ("POST", f"{API_BASE}/interactions/88/tok/callback")
    assert payload == {"type": 5, "data": {"flags": 64}}


@pytest.mark.asyncio
async def test_bulk_delete_payload():
    http, session = client(FakeResponse(HTTP_NO_CONTENT))
    await http.delete_messages(1, [10, 11])
    assert session.calls[0][2] == {"messages": ["10", "11"]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "emoji,path",
    [("👍", "%F0%9F%91%8D"), ("party:55", "party:55")],
)
async def test_reaction_path(emoji, path):
    http, session = client(FakeResponse(HTTP_NO_CONTENT))
    await http.create_reaction(1, 2, emoji)
    assert session.calls[0][:2] == ("PUT", f"{API_BASE}/channels/1/messages/2/reactions/{path}/@me")


@pytest.mark.asyncio
async def test_timeout_payload():
    http, session = client(FakeResponse(HTTP_OK, {"roles": []}), FakeResponse(HTTP_OK, {"roles": []}))
    await http.timeout_member(1, 2, datetime(2024, 5, 1, 12, 0, tzinfo=UTC))
    await http.timeout_member(1, 2, None)
    method, url, payload, _ = session.calls[0]
    assert (method, url) == ("PATCH", f"{API_BASE}/guilds/1/members/2")
    assert payload == {"communication_disabled_until": "2024-05-01T12:00:00+00:00"}
    assert session.calls[1][2] == {"communication_disabled_until": None}


@pytest.mark.asyncio
async def test_gateway_url():
    http, _ = client(FakeResponse(HTTP_OK, {"url": "wss://gateway.discord.gg", "shards": 1}))
    assert await http.gateway_url() == "wss://gateway.discord.gg"


@pytest.mark.asyncio
async def test_close():
    http, session = client()
    await http.close()
    assert session.closed
