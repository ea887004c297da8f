"""
FastAPI Application Factories

One factory per server run by the process:
- create_app()           : API server (demo endpoints, OpenAPI validation)
- create_private_app()   : private server (liveness / readiness / tasks)
- create_metrics_app()   : metrics server (Prometheus exposition)
- create_mock_auth_app() : mock identity service for local testing

Each factory takes its collaborators explicitly (options, metrics context,
auth client, supervisor) and attaches them to app.state, so tests can build
an app with whatever doubles they need.

FastAPI automatically:
- Validates requests against the OpenAPI schema generated from the routes
- Serves that schema at /openapi.json and the docs at /docs
"""

from typing import Optional

from fastapi import Depends, FastAPI
from starlette.middleware.gzip import GZipMiddleware

from api.middleware.auth import AuthN, require_identity
from api.middleware.error_handler import register_exception_handlers
from api.middleware.metrics import MetricsMiddleware
from api.middleware.request_logging import RequestLoggingMiddleware
from api.middleware.throttle import ThrottleMiddleware
from api.routes import demo, health, metrics as metrics_routes, mock_auth
from clients.auth import AuthClient
from lifecycle.supervisor import Supervisor
from metrics.context import MetricsContext
from models.enums import LogCategory
from models.options import ServiceOptions
from utils.logger import get_logger

log = get_logger().for_category(LogCategory.API)

SERVICE_NAME = "build-submodule-demo"
VERSION = "0.1.0"

GZIP_MINIMUM_SIZE = 500
GZIP_LEVEL = 5


def create_app(
    options: Optional[ServiceOptions] = None,
    metrics: Optional[MetricsContext] = None,
    auth_client: Optional[AuthClient] = None,
    docs_enabled: bool = True,
) -> FastAPI:
    """
    Create the API server application.

    Args:
        options: Service options (gzip, throttle limit, auth)
        metrics: Metrics context recording request metrics, None to skip
        auth_client: Client used to resolve sessions when options.auth is set
        docs_enabled: Serve /docs and /openapi.json

    Returns:
        Configured FastAPI application
    """
    options = options or ServiceOptions()

    app = FastAPI(
        title=SERVICE_NAME,
        description="Demo API",
        version=VERSION,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.options = options
    app.state.metrics = metrics
    if auth_client is not None:
        app.state.authn = AuthN(auth_client)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    register_exception_handlers(app)

    # =========================================================================
    # Routes
    # =========================================================================
    # With auth enabled every demo route requires a session (or API token).

    route_dependencies = [Depends(require_identity)] if options.auth else []
    app.include_router(demo.router, dependencies=route_dependencies)

    log.debug(f"Routes registered: demo (/v1/demo), auth={'required' if options.auth else 'off'}")

    # =========================================================================
    # Middleware
    # =========================================================================
    # Added innermost first: logging → metrics → gzip → throttle → routes

    app.add_middleware(ThrottleMiddleware, limit=options.throttle_limit)
    if options.enable_gzip:
        app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE, compresslevel=GZIP_LEVEL)
    if metrics is not None:
        app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(RequestLoggingMiddleware)

    log.info(f"API app created: {SERVICE_NAME} v{VERSION}")
    return app


def create_private_app(
    options: Optional[ServiceOptions] = None,
    supervisor: Optional[Supervisor] = None,
) -> FastAPI:
    """Create the private server application (health probes, task introspection)."""
    options = options or ServiceOptions()

    app = FastAPI(
        title=f"{SERVICE_NAME} private",
        version=VERSION,
        docs_url=None,
        redoc_url=None,
    )
    app.state.options = options
    app.state.supervisor = supervisor

    register_exception_handlers(app)
    app.include_router(health.router)

    if options.enable_gzip:
        app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE, compresslevel=GZIP_LEVEL)
    app.add_middleware(RequestLoggingMiddleware)

    log.debug("Private app created (/liveness, /readiness, /tasks)")
    return app


def create_metrics_app(metrics: MetricsContext) -> FastAPI:
    """Create the metrics server application."""
    app = FastAPI(
        title=f"{SERVICE_NAME} metrics",
        version=VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.metrics = metrics

    app.include_router(metrics_routes.router)
    app.add_middleware(RequestLoggingMiddleware)

    log.debug("Metrics app created (/metrics)")
    return app


def create_mock_auth_app() -> FastAPI:
    """Create the mock auth service application."""
    app = FastAPI(
        title="mauth",
        version=VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(mock_auth.router)
    app.add_middleware(RequestLoggingMiddleware)
    return app
