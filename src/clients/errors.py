"""Errors raised by the external service clients."""


class AuthClientError(Exception):
    """Auth service call failed."""


class NotFoundError(AuthClientError):
    """The auth service does not know the session or token."""

    @property
    def not_found(self) -> bool:
        return True


def is_not_found(error: BaseException) -> bool:
    """True if `error` reports a missing resource."""
    return bool(getattr(error, "not_found", False))
