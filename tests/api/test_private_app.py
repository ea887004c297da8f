import asyncio

import pytest
from fastapi.testclient import TestClient

from api.main import create_private_app
from lifecycle import Supervisor, Task


def test_liveness():
    client = TestClient(create_private_app())
    response = client.get("/liveness")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readiness_without_supervisor():
    client = TestClient(create_private_app())
    assert client.get("/readiness").status_code == 200


def test_readiness_flips_on_shutdown():
    supervisor = Supervisor()
    client = TestClient(create_private_app(supervisor=supervisor))

    assert client.get("/readiness").json() == {"status": "ok", "reason": None}

    supervisor.shutdown("SIGTERM")
    response = client.get("/readiness")

    assert response.status_code == 503
    assert response.json() == {"status": "shutting_down", "reason": "SIGTERM"}
    # Liveness is unaffected while draining
    assert client.get("/liveness").status_code == 200


def test_tasks_without_supervisor():
    client = TestClient(create_private_app())
    assert client.get("/tasks").json() == {"count": 0, "shutting_down": False, "tasks": []}


def test_tasks_lists_registered():
    async def noop():
        return None

    supervisor = Supervisor()
    supervisor.register(Task("api", noop))
    supervisor.register(Task("private", noop))
    client = TestClient(create_private_app(supervisor=supervisor))

    body = client.get("/tasks").json()

    assert body["count"] == 2
    assert body["shutting_down"] is False
    assert [t["name"] for t in body["tasks"]] == ["api", "private"]
    assert {t["state"] for t in body["tasks"]} == {"registered"}


@pytest.mark.asyncio
async def test_tasks_after_run():
    boom = RuntimeError("boom")

    async def fail():
        raise boom

    async def wait_forever():
        await asyncio.Event().wait()

    supervisor = Supervisor()
    supervisor.register(Task("worker", wait_forever))
    supervisor.register(Task("broken", fail))
    assert await asyncio.wait_for(supervisor.run(), timeout=5) is boom

    client = TestClient(create_private_app(supervisor=supervisor))
    body = client.get("/tasks").json()

    assert body["shutting_down"] is True
    broken = body["tasks"][1]
    assert broken["state"] == "failed"
    assert broken["error"] == "boom"
    assert broken["error_type"] == "RuntimeError"
