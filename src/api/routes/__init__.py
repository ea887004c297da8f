"""
API Routes - HTTP endpoint handlers

Each server gets its own routers:
- demo    : API server (/v1/demo)
- health  : private server (/liveness, /readiness, /tasks)
- metrics : metrics server (/metrics)
- mock_auth : mock auth server used for local testing
"""
