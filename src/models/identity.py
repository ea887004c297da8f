"""
Request identity - who is making an API request

Resolved once per request by the authentication dependency and passed
explicitly to handlers (and stored on request.state.identity).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestIdentity:
    """Optional user / robot identity attached to a request"""
    user_id: Optional[int] = None
    robot_id: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None or self.robot_id is not None

    @classmethod
    def anonymous(cls) -> "RequestIdentity":
        return cls()
