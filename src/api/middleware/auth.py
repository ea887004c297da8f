"""
Authentication for API routes

FastAPI dependencies resolving who is calling:
1. "Authorization: Bearer <api token>" → auth service token lookup
   (user or robot owner)
2. otherwise the "SID" session cookie → auth service session lookup

The result is an explicit RequestIdentity, returned by the dependency and
stored on request.state.identity.

Usage:
    @router.get("/v1/things")
    async def things(identity: RequestIdentity = Depends(require_identity)):
        ...
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from api.middleware.error_handler import AuthServiceUnavailableError
from clients.auth import AuthClient, SESSION_COOKIE_NAME
from clients.errors import AuthClientError
from models.enums import Entity, LogCategory
from models.identity import RequestIdentity
from utils.logger import get_logger

log = get_logger().for_category(LogCategory.AUTH)

ERR_MISSING_SESSION = "failed to extract required session cookie"
ERR_GET_USER_ID = "failed to get user ID for session"
ERR_GET_ENTITY_ID = "failed to get entity for API token"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class AuthN:
    """Authentication backed by an auth client."""

    def __init__(self, client: AuthClient):
        self.client = client

    async def _from_token(self, token: str) -> RequestIdentity:
        entity, owner_id = await self.client.get_entity_id(token)
        if entity is Entity.ROBOT:
            return RequestIdentity(robot_id=owner_id)
        try:
            return RequestIdentity(user_id=int(owner_id))
        except ValueError as e:
            raise AuthClientError(f"invalid user id {owner_id!r}") from e

    async def _from_session(self, session: str) -> RequestIdentity:
        return RequestIdentity(user_id=await self.client.get_user_id(session))

    async def required(self, request: Request) -> RequestIdentity:
        """Resolve the caller or abort the request with 401."""
        token = _bearer_token(request)
        if token is not None:
            try:
                identity = await self._from_token(token)
            except AuthClientError as e:
                log.debug(ERR_GET_ENTITY_ID, error=str(e))
                raise _unauthorized(ERR_GET_ENTITY_ID) from e
        else:
            session = request.cookies.get(SESSION_COOKIE_NAME)
            if not session:
                log.debug(ERR_MISSING_SESSION)
                raise _unauthorized(ERR_MISSING_SESSION)
            try:
                identity = await self._from_session(session)
            except AuthClientError as e:
                log.debug(ERR_GET_USER_ID, error=str(e))
                raise _unauthorized(ERR_GET_USER_ID) from e

        request.state.identity = identity
        return identity

    async def optional(self, request: Request) -> RequestIdentity:
        """Resolve the caller if possible, otherwise continue anonymously."""
        identity = RequestIdentity.anonymous()
        token = _bearer_token(request)
        session = request.cookies.get(SESSION_COOKIE_NAME)
        try:
            if token is not None:
                identity = await self._from_token(token)
            elif session:
                identity = await self._from_session(session)
        except AuthClientError as e:
            log.debug("Continuing anonymously", error=str(e))

        request.state.identity = identity
        return identity


def get_authn(request: Request) -> Optional[AuthN]:
    return getattr(request.app.state, "authn", None)


async def require_identity(request: Request) -> RequestIdentity:
    """FastAPI dependency: authenticated caller or 401."""
    authn = get_authn(request)
    if authn is None:
        raise AuthServiceUnavailableError()
    return await authn.required(request)


async def optional_identity(request: Request) -> RequestIdentity:
    """FastAPI dependency: caller identity, anonymous when unauthenticated."""
    authn = get_authn(request)
    if authn is None:
        identity = RequestIdentity.anonymous()
        request.state.identity = identity
        return identity
    return await authn.optional(request)
