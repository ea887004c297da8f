"""
API Dependencies - access to the objects each app was built with

create_app() and friends attach their collaborators to app.state; endpoints
reach them through these dependencies instead of module globals.

Example:
    @router.get("/tasks")
    async def tasks(supervisor: Optional[Supervisor] = Depends(get_supervisor)):
        ...
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from lifecycle.supervisor import Supervisor
from metrics.context import MetricsContext
from models.options import ServiceOptions


def get_options(request: Request) -> ServiceOptions:
    return getattr(request.app.state, "options", None) or ServiceOptions()


def get_supervisor(request: Request) -> Optional[Supervisor]:
    """Supervisor running this process, None when the app runs standalone."""
    return getattr(request.app.state, "supervisor", None)


def get_metrics(request: Request) -> MetricsContext:
    """
    Metrics context of this process.

    Raises:
        HTTPException: 503 Service Unavailable if no metrics context is attached
    """
    metrics = getattr(request.app.state, "metrics", None)
    if metrics is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Metrics are not enabled"
        )
    return metrics
