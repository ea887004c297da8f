import json

import httpx
import pytest

from api.main import create_mock_auth_app
from clients.auth import (
    API_TOKEN_PATH,
    SESSION_TOKEN_PATH,
    AuthClientConfig,
    ExternalAuthClient,
    MockAuthClient,
)
from clients.errors import AuthClientError, NotFoundError, is_not_found
from models.enums import Entity

CONFIG = AuthClientConfig(auth_host="http://auth.local:8081", private_host="http://private.local:8081")


def make_client(handler) -> ExternalAuthClient:
    return ExternalAuthClient(CONFIG, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_get_user_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"userID": 42})

    client = make_client(handler)
    assert await client.get_user_id("session-token") == 42

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "http://auth.local:8081" + SESSION_TOKEN_PATH
    assert json.loads(request.content) == {"jwtToken": "session-token"}


@pytest.mark.asyncio
async def test_host_path_is_replaced():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"userID": 1})

    config = AuthClientConfig(auth_host="http://auth.local/ignored/prefix", private_host="http://p.local")
    client = ExternalAuthClient(config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    await client.get_user_id("t")

    assert seen == [SESSION_TOKEN_PATH]


@pytest.mark.asyncio
@pytest.mark.parametrize("owner_type, expected", [("user", Entity.USER), ("robot", Entity.ROBOT)])
async def test_get_entity_id(owner_type, expected):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "private.local"
        assert request.url.path == API_TOKEN_PATH
        return httpx.Response(200, json={
            "id": "5f0c6b8e-2d8a-4c3e-9d55-0b1d2c3e4f50",
            "name": "ci token",
            "ownerType": owner_type,
            "ownerID": "owner-7",
            "createdAt": "2023-05-01T12:00:00Z",
            "lastUsedAt": None,
        })

    entity, owner_id = await make_client(handler).get_entity_id("api-token")

    assert entity is expected
    assert owner_id == "owner-7"


@pytest.mark.asyncio
async def test_unknown_owner_type():
    def handler(request):
        return httpx.Response(200, json={"ownerType": "service", "ownerID": "1"})

    with pytest.raises(AuthClientError):
        await make_client(handler).get_entity_id("t")


@pytest.mark.asyncio
async def test_not_found():
    client = make_client(lambda request: httpx.Response(404))

    with pytest.raises(NotFoundError) as info:
        await client.get_user_id("expired")

    assert is_not_found(info.value)
    assert str(info.value) == "could not find session"


@pytest.mark.asyncio
async def test_unsuccessful_status():
    client = make_client(lambda request: httpx.Response(500, text="oops"))

    with pytest.raises(AuthClientError) as info:
        await client.get_user_id("t")

    assert not is_not_found(info.value)
    assert str(info.value) == "session request was not successful"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"not json", b'{"userID": "abc"}', b"{}", b'{"userID": -1}'])
async def test_invalid_response_body(body):
    client = make_client(lambda request: httpx.Response(200, content=body))

    with pytest.raises(AuthClientError) as info:
        await client.get_user_id("t")

    assert str(info.value).startswith("invalid session response body")


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthClientError) as info:
        await make_client(handler).get_user_id("t")

    assert str(info.value).startswith("session request failed")
    assert isinstance(info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_aclose_leaves_borrowed_client_open():
    borrowed = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    client = ExternalAuthClient(CONFIG, client=borrowed)

    await client.aclose()
    assert not borrowed.is_closed
    await borrowed.aclose()

    owned = ExternalAuthClient(CONFIG)
    await owned.aclose()
    assert owned._client.is_closed


@pytest.mark.asyncio
async def test_against_mock_auth_app():
    transport = httpx.ASGITransport(app=create_mock_auth_app())
    config = AuthClientConfig(auth_host="http://mauth", private_host="http://mauth")
    async with httpx.AsyncClient(transport=transport) as http:
        client = ExternalAuthClient(config, client=http)

        assert await client.get_user_id("anything") == 2
        assert await client.get_entity_id("anything") == (Entity.USER, "2")


# ---------------------------------------------------------------------------
# MockAuthClient
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_mock_client_sync_and_async_callables():
    async def entity(token):
        return Entity.ROBOT, f"robot-{token}"

    client = MockAuthClient(get_user_id_fn=lambda token: len(token), get_entity_id_fn=entity)

    assert await client.get_user_id("abcd") == 4
    assert await client.get_entity_id("x") == (Entity.ROBOT, "robot-x")


@pytest.mark.asyncio
async def test_mock_client_errors_propagate():
    def missing(token):
        raise NotFoundError("could not find session")

    client = MockAuthClient(get_user_id_fn=missing)

    with pytest.raises(NotFoundError):
        await client.get_user_id("t")
    with pytest.raises(NotImplementedError):
        await client.get_entity_id("t")
