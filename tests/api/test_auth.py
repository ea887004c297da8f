import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from api.main import create_app
from api.middleware.auth import AuthN, optional_identity
from clients.auth import MockAuthClient
from clients.errors import AuthClientError, NotFoundError
from models.enums import Entity
from models.identity import RequestIdentity
from models.options import ServiceOptions


def session_lookup(token):
    if token == "2":
        return 2
    raise NotFoundError("could not find session")


def token_lookup(token):
    if token == "robot-token":
        return Entity.ROBOT, "7f1c2b1e-robot"
    if token == "user-token":
        return Entity.USER, "5"
    raise AuthClientError("session request was not successful")


@pytest.fixture
def auth_client():
    return MockAuthClient(get_user_id_fn=session_lookup, get_entity_id_fn=token_lookup)


@pytest.fixture
def client(auth_client):
    app = create_app(ServiceOptions(auth=True), auth_client=auth_client)
    return TestClient(app)


def test_missing_cookie_is_401(client):
    response = client.get("/v1/demo")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_valid_session(client):
    client.cookies.set("SID", "2")
    response = client.get("/v1/demo")
    assert response.status_code == 200
    assert response.text == "Hello World!"


def test_rejected_session_is_401(client):
    client.cookies.set("SID", "unknown")
    assert client.get("/v1/demo").status_code == 401


def test_bearer_token(client):
    response = client.get("/v1/demo", headers={"Authorization": "Bearer robot-token"})
    assert response.status_code == 200

    response = client.get("/v1/demo", headers={"Authorization": "Bearer bogus"})
    assert response.status_code == 401


def test_auth_disabled_needs_no_session():
    client = TestClient(create_app(ServiceOptions(auth=False)))
    assert client.get("/v1/demo").status_code == 200


def test_auth_enabled_without_client_is_503():
    client = TestClient(create_app(ServiceOptions(auth=True)))
    response = client.get("/v1/demo")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "AUTH_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Resolved identity
# ---------------------------------------------------------------------------

def _identity_app(auth_client) -> FastAPI:
    app = FastAPI()
    app.state.authn = AuthN(auth_client)
    authn = app.state.authn

    @app.get("/required")
    async def required(request: Request, identity: RequestIdentity = Depends(authn.required)):
        assert request.state.identity == identity
        return {"user_id": identity.user_id, "robot_id": identity.robot_id}

    @app.get("/optional")
    async def optional(identity: RequestIdentity = Depends(optional_identity)):
        return {"user_id": identity.user_id, "robot_id": identity.robot_id,
                "authenticated": identity.authenticated}

    return app


def test_required_identity_fields(auth_client):
    client = TestClient(_identity_app(auth_client))

    assert client.get("/required", cookies={"SID": "2"}).json() == {"user_id": 2, "robot_id": None}
    assert client.get("/required", headers={"Authorization": "Bearer user-token"}).json() == {
        "user_id": 5, "robot_id": None}
    assert client.get("/required", headers={"Authorization": "Bearer robot-token"}).json() == {
        "user_id": None, "robot_id": "7f1c2b1e-robot"}


def test_optional_identity_falls_back_to_anonymous(auth_client):
    client = TestClient(_identity_app(auth_client))

    assert client.get("/optional").json() == {"user_id": None, "robot_id": None, "authenticated": False}
    assert client.get("/optional", cookies={"SID": "bad"}).json()["authenticated"] is False
    assert client.get("/optional", cookies={"SID": "2"}).json() == {
        "user_id": 2, "robot_id": None, "authenticated": True}
