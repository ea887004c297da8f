"""
Metrics middleware - records request counters and duration into a MetricsContext
"""

import time

from metrics.context import MetricsContext


def _host(scope) -> str:
    for key, value in scope.get("headers") or []:
        if key == b"host":
            return value.decode("latin-1")
    return ""


class MetricsMiddleware:

    def __init__(self, app, metrics: MetricsContext):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        host = _host(scope)
        tls = scope.get("scheme") == "https"

        self.metrics.request_started(method, host, tls)
        status_code = 500
        started = time.perf_counter()

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            self.metrics.request_completed(method, host, tls, status_code, duration_ms)
