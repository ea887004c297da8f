"""
Request logging middleware

Pure ASGI middleware: one DEBUG line per handled request with the request
id, method, tls, host, uri, protocol, remote address, status, bytes written
and duration. The request id is exposed on request.state.request_id and
echoed in the X-Request-Id response header.
"""

import time
import uuid

from utils.logger import get_logger
from models.enums import LogCategory

log = get_logger().for_category(LogCategory.HTTP)

REQUEST_ID_HEADER = b"x-request-id"


def _header(scope, name: bytes) -> str:
    for key, value in scope.get("headers") or []:
        if key == name:
            return value.decode("latin-1")
    return ""


def request_uri(scope) -> str:
    path = scope.get("raw_path") or scope.get("path", "").encode()
    if isinstance(path, bytes):
        path = path.decode("latin-1")
    query = scope.get("query_string", b"")
    return f"{path}?{query.decode('latin-1')}" if query else path


class RequestLoggingMiddleware:

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, REQUEST_ID_HEADER) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        client = scope.get("client")
        fields = {
            "id": request_id,
            "method": scope.get("method"),
            "tls": scope.get("scheme") == "https",
            "host": _header(scope, b"host"),
            "uri": request_uri(scope),
            "protocol": f"HTTP/{scope.get('http_version', '1.1')}",
            "remote": f"{client[0]}:{client[1]}" if client else "",
        }

        status_code = 0
        written = 0
        started = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code, written
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            elif message["type"] == "http.response.body":
                written += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            log.debug(
                "Panicked while handling request",
                **fields,
                error=f"{type(e).__name__}: {e}",
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        log.debug(
            "Handled request",
            **fields,
            status=status_code,
            bytes=written,
            duration=f"{duration_ms:.3f}ms",
        )
