"""
Health endpoints - liveness / readiness probes and task introspection

Served by the private server. Readiness flips to 503 as soon as the
supervisor's shutdown signal fires, so load balancers stop routing traffic
while the servers drain.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_supervisor
from api.schemas.health import ProbeResponse, TaskListResponse, TaskStatus
from lifecycle.supervisor import Supervisor
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.HEALTH)

router = APIRouter(tags=["Health"])


@router.get("/liveness", response_model=ProbeResponse, summary="Liveness probe")
async def get_liveness() -> ProbeResponse:
    return ProbeResponse(status="ok")


@router.get(
    "/readiness",
    response_model=ProbeResponse,
    summary="Readiness probe",
    responses={503: {"model": ProbeResponse, "description": "Shutting down"}},
)
async def get_readiness(
    response: Response,
    supervisor: Optional[Supervisor] = Depends(get_supervisor),
) -> ProbeResponse:
    if supervisor is not None and supervisor.shutdown_signal.is_set():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ProbeResponse(status="shutting_down", reason=supervisor.shutdown_signal.reason)
    return ProbeResponse(status="ok")


@router.get("/tasks", response_model=TaskListResponse, summary="Supervised tasks")
async def get_tasks(supervisor: Optional[Supervisor] = Depends(get_supervisor)) -> TaskListResponse:
    """
    State of every task run by the supervisor.

    Returns:
        - count: Number of registered tasks
        - shutting_down: Whether the shutdown signal has fired
        - tasks: Per-task state (registered, running, stopping, stopped, failed)
    """
    if supervisor is None:
        return TaskListResponse(count=0, shutting_down=False, tasks=[])

    tasks = [TaskStatus(**entry) for entry in supervisor.snapshot()]
    return TaskListResponse(
        count=len(tasks),
        shutting_down=supervisor.shutdown_signal.is_set(),
        tasks=tasks,
    )
