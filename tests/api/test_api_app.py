import asyncio

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import create_app
from api.middleware.error_handler import DomainError
from api.middleware.throttle import ThrottleMiddleware, CAPACITY_EXCEEDED
from metrics.context import MetricsContext
from models.options import ServiceOptions


@pytest.fixture
def client():
    return TestClient(create_app(ServiceOptions()))


def test_demo_hello_world(client):
    response = client.get("/v1/demo")

    assert response.status_code == 200
    assert response.text == "Hello World!"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(client):
    response = client.get("/v1/demo", headers={"X-Request-Id": "req-12345"})
    assert response.headers["x-request-id"] == "req-12345"


def test_trailing_slash_redirects(client):
    response = client.get("/v1/demo/", follow_redirects=False)
    assert response.status_code in (307, 308)
    assert response.headers["location"].endswith("/v1/demo")

    assert client.get("/v1/demo/").text == "Hello World!"


def test_unknown_route_is_404(client):
    assert client.get("/v1/nope").status_code == 404


def test_openapi_schema_lists_demo(client):
    schema = client.get("/openapi.json").json()
    assert "/v1/demo" in schema["paths"]


def test_gzip_enabled():
    client = TestClient(create_app(ServiceOptions(enable_gzip=True)))
    response = client.get("/docs", headers={"Accept-Encoding": "gzip"})

    assert response.status_code == 200
    assert response.headers.get("content-encoding") == "gzip"


def test_gzip_disabled():
    client = TestClient(create_app(ServiceOptions(enable_gzip=False)))
    response = client.get("/docs", headers={"Accept-Encoding": "gzip"})

    assert response.status_code == 200
    assert "content-encoding" not in response.headers


def test_requests_are_counted():
    metrics = MetricsContext()
    client = TestClient(create_app(ServiceOptions(), metrics=metrics))

    client.get("/v1/demo")
    client.get("/v1/demo")
    client.get("/v1/nope")

    labels = {"method": "GET", "host": "testserver", "tls": "false"}
    assert metrics.sample("http_request_started_total", **labels) == 3.0
    assert metrics.sample("http_request_completed_total", status_code="200", **labels) == 2.0
    assert metrics.sample("http_request_completed_total", status_code="404", **labels) == 1.0
    assert metrics.sample("http_request_duration_ms_count", status_code="200", **labels) == 2.0


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

def _app_with_failing_routes() -> FastAPI:
    app = create_app(ServiceOptions())

    @app.get("/v1/domain-error")
    async def domain_error():
        raise DomainError(code="TEAPOT", message="short and stout", details={"spout": True}, status_code=418)

    @app.get("/v1/typed")
    async def typed(count: int):
        return {"count": count}

    @app.get("/v1/crash")
    async def crash():
        raise RuntimeError("unexpected")

    return app


def test_domain_error_response():
    client = TestClient(_app_with_failing_routes())
    response = client.get("/v1/domain-error")

    assert response.status_code == 418
    body = response.json()
    assert body["error"]["code"] == "TEAPOT"
    assert body["error"]["message"] == "short and stout"
    assert body["error"]["details"] == {"spout": True}
    assert body["request_id"] == response.headers["x-request-id"]


def test_validation_error_response():
    client = TestClient(_app_with_failing_routes())
    response = client.get("/v1/typed", params={"count": "many"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"] == {"error_count": 1}
    assert body["validation_errors"][0]["field"] == "count"


def test_unexpected_error_response():
    client = TestClient(_app_with_failing_routes(), raise_server_exceptions=False)
    response = client.get("/v1/crash")

    assert response.status_code == 500
    body = response.json()
    assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
    assert body["request_id"]


# ---------------------------------------------------------------------------
# Throttle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_throttle_rejects_over_limit():
    entered = asyncio.Event()
    release = asyncio.Event()

    inner = FastAPI()

    @inner.get("/hold")
    async def hold():
        entered.set()
        await release.wait()
        return {"ok": True}

    throttled = ThrottleMiddleware(inner, limit=1)
    transport = httpx.ASGITransport(app=throttled)

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        first = asyncio.create_task(client.get("/hold"))
        await asyncio.wait_for(entered.wait(), timeout=2)
        assert throttled.in_flight == 1

        rejected = await client.get("/hold")
        assert rejected.status_code == 429
        assert rejected.content == CAPACITY_EXCEEDED

        release.set()
        assert (await first).status_code == 200

    assert throttled.in_flight == 0


def test_throttle_limit_must_be_positive():
    with pytest.raises(ValueError):
        ThrottleMiddleware(FastAPI(), limit=0)
