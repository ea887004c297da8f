"""
Clients for external services.
"""

from .errors import AuthClientError, NotFoundError, is_not_found
from .auth import (
    AuthClient,
    AuthClientConfig,
    ExternalAuthClient,
    MockAuthClient,
    SessionRequest,
    SessionResponse,
    EntityResponse,
    SESSION_COOKIE_NAME,
)

__all__ = [
    "AuthClientError",
    "NotFoundError",
    "is_not_found",
    "AuthClient",
    "AuthClientConfig",
    "ExternalAuthClient",
    "MockAuthClient",
    "SessionRequest",
    "SessionResponse",
    "EntityResponse",
    "SESSION_COOKIE_NAME",
]
