"""
HTTP layer

FastAPI applications served by the process:
- API server     : demo endpoints
- Private server : health probes and task introspection
- Metrics server : Prometheus exposition
- Mock auth      : identity service stand-in (separate entry point)

Structure:
- routes/     : Endpoint handlers
- schemas/    : Pydantic schemas
- middleware/ : Auth, error handling, logging, metrics, throttling
"""

from api.main import create_app, create_private_app, create_metrics_app, create_mock_auth_app

__all__ = ["create_app", "create_private_app", "create_metrics_app", "create_mock_auth_app"]
