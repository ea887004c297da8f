"""
Throttle middleware - caps the number of requests handled at once

Requests beyond the limit are rejected immediately with 429 instead of
queueing.
"""

from utils.logger import get_logger
from models.enums import LogCategory

log = get_logger().for_category(LogCategory.HTTP)

DEFAULT_LIMIT = 400
CAPACITY_EXCEEDED = b"Server capacity exceeded."


class ThrottleMiddleware:

    def __init__(self, app, limit: int = DEFAULT_LIMIT):
        if limit < 1:
            raise ValueError("Throttle limit must be at least 1")
        self.app = app
        self.limit = limit
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if self._in_flight >= self.limit:
            log.warn(f"Throttle limit reached ({self.limit}), rejecting {scope.get('path')}")
            await send({
                "type": "http.response.start",
                "status": 429,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(CAPACITY_EXCEEDED)).encode()),
                ],
            })
            await send({"type": "http.response.body", "body": CAPACITY_EXCEEDED})
            return

        self._in_flight += 1
        try:
            await self.app(scope, receive, send)
        finally:
            self._in_flight -= 1
