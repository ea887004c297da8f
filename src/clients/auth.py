"""
Auth client
-----------

Resolves session tokens and API tokens against the external identity
service. JSON over HTTP via httpx.

    client = ExternalAuthClient(AuthClientConfig(auth_host, private_host))
    user_id = await client.get_user_id(session_token)
    entity, owner_id = await client.get_entity_id(api_token)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Tuple, Type, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, Field, ValidationError

from clients.errors import AuthClientError, NotFoundError
from models.enums import Entity, LogCategory
from utils.logger import get_logger

log = get_logger().for_category(LogCategory.AUTH)

ERR_INVALID_SESSION_REQUEST_BODY = "invalid session request body"
ERR_DO_SESSION_REQUEST = "session request failed"
ERR_NOT_FOUND = "could not find session"
ERR_SESSION_RESPONSE = "session request was not successful"
ERR_INVALID_SESSION_RESPONSE_BODY = "invalid session response body"

# Name of the cookie holding a session token
SESSION_COOKIE_NAME = "SID"

SESSION_TOKEN_PATH = "/v1/session/token/user"
API_TOKEN_PATH = "/v1/tokens/validate"

DEFAULT_TIMEOUT = 10.0

ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# WIRE MODELS
# ---------------------------------------------------------------------------

class SessionRequest(BaseModel):
    """Request body for session / token lookups"""
    jwt_token: str = Field(alias="jwtToken")

    class Config:
        populate_by_name = True


class SessionResponse(BaseModel):
    """Session lookup result"""
    user_id: int = Field(alias="userID", ge=0)

    class Config:
        populate_by_name = True


class EntityResponse(BaseModel):
    """API token lookup result"""
    id: Optional[UUID] = None
    name: str = ""
    owner_type: str = Field(alias="ownerType")
    owner_id: str = Field(alias="ownerID")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_used_at: Optional[datetime] = Field(None, alias="lastUsedAt")

    class Config:
        populate_by_name = True


# ---------------------------------------------------------------------------
# CLIENTS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthClientConfig:
    auth_host: str
    private_host: str
    timeout: float = DEFAULT_TIMEOUT


class AuthClient(Protocol):
    async def get_user_id(self, token: str) -> int: ...

    async def get_entity_id(self, token: str) -> Tuple[Entity, str]: ...


class ExternalAuthClient:
    """Auth client backed by the external identity service."""

    def __init__(self, config: AuthClientConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    async def get_user_id(self, token: str) -> int:
        """Get the user id behind a session token."""
        session = await self._post(self.config.auth_host, SESSION_TOKEN_PATH, token, SessionResponse)
        return session.user_id

    async def get_entity_id(self, token: str) -> Tuple[Entity, str]:
        """Get the owning entity (user or robot) of an API token."""
        entity = await self._post(self.config.private_host, API_TOKEN_PATH, token, EntityResponse)
        try:
            return Entity(entity.owner_type), entity.owner_id
        except ValueError as e:
            log.debug(ERR_INVALID_SESSION_RESPONSE_BODY, owner_type=entity.owner_type)
            raise AuthClientError(f"{ERR_INVALID_SESSION_RESPONSE_BODY}: {e}") from e

    async def _post(self, host: str, path: str, token: str, model: Type[ModelT]) -> ModelT:
        try:
            url = httpx.URL(host).copy_with(path=path)
        except (httpx.InvalidURL, TypeError) as e:
            log.debug(ERR_INVALID_SESSION_REQUEST_BODY, error=str(e))
            raise AuthClientError(f"{ERR_INVALID_SESSION_REQUEST_BODY}: {e}") from e

        body = SessionRequest(jwt_token=token).model_dump(by_alias=True)
        try:
            response = await self._client.post(url, json=body)
        except httpx.HTTPError as e:
            log.debug(ERR_DO_SESSION_REQUEST, error=str(e))
            raise AuthClientError(f"{ERR_DO_SESSION_REQUEST}: {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            log.debug(ERR_NOT_FOUND)
            raise NotFoundError(ERR_NOT_FOUND)
        if not response.is_success:
            log.debug(ERR_SESSION_RESPONSE, status=response.status_code)
            raise AuthClientError(ERR_SESSION_RESPONSE)

        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            log.debug(ERR_INVALID_SESSION_RESPONSE_BODY, error=str(e))
            raise AuthClientError(f"{ERR_INVALID_SESSION_RESPONSE_BODY}: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class MockAuthClient:
    """Auth client whose answers come from the supplied callables."""

    def __init__(
        self,
        get_user_id_fn: Optional[Callable[[str], Any]] = None,
        get_entity_id_fn: Optional[Callable[[str], Any]] = None,
    ):
        self.get_user_id_fn = get_user_id_fn
        self.get_entity_id_fn = get_entity_id_fn

    async def get_user_id(self, token: str) -> int:
        return await _call(self.get_user_id_fn, token)

    async def get_entity_id(self, token: str) -> Tuple[Entity, str]:
        return await _call(self.get_entity_id_fn, token)

    async def aclose(self) -> None:
        pass


async def _call(fn: Optional[Callable[[str], Any]], token: str) -> Any:
    if fn is None:
        raise NotImplementedError("MockAuthClient method not configured")
    result = fn(token)
    if inspect.isawaitable(result):
        result = await result
    return result
