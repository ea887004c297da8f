"""
Mock auth endpoints - stand-in for the identity service in local testing

Every session resolves to user 2; every API token belongs to user 2.
"""

from fastapi import APIRouter, Response

from clients.auth import SESSION_COOKIE_NAME

router = APIRouter(tags=["Mock auth"])

ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE"]

MOCK_USER_ID = 2


@router.api_route("/cookie", methods=ANY_METHOD)
async def set_cookie() -> Response:
    response = Response()
    response.set_cookie(SESSION_COOKIE_NAME, str(MOCK_USER_ID))
    return response


@router.api_route("/v1/session/token/user", methods=ANY_METHOD)
async def session_user() -> dict:
    return {"userID": MOCK_USER_ID}


@router.api_route("/v1/tokens/validate", methods=ANY_METHOD)
async def validate_token() -> dict:
    return {
        "id": "00000000-0000-0000-0000-000000000002",
        "name": "mock",
        "ownerType": "user",
        "ownerID": str(MOCK_USER_ID),
        "createdAt": "2023-01-01T00:00:00Z",
        "lastUsedAt": None,
    }


@router.api_route("/v1/accounts/{path:path}", methods=ANY_METHOD)
async def account(path: str) -> dict:
    return {"id": MOCK_USER_ID}
