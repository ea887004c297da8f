"""
main_asyncio.py — Application entry point for build-submodule-demo
------------------------------------------------------------------

Responsible for:
- loading the service options
- building the API, metrics and private servers
- running them under one Supervisor
- graceful shutdown on Ctrl+C / SIGTERM or on the first server failure
"""

import sys

# ---------------------------------------------------------------------------
# UTF-8 ENCODING FIX
# ---------------------------------------------------------------------------

# Set UTF-8 encoding for output before anything logs (symbols in log lines)
if hasattr(sys.stdout, 'reconfigure') and sys.stdout.encoding != 'UTF-8':
    sys.stdout.reconfigure(encoding='utf-8')  # type: ignore
if hasattr(sys.stderr, 'reconfigure') and sys.stderr.encoding != 'UTF-8':
    sys.stderr.reconfigure(encoding='utf-8')  # type: ignore

import asyncio
from typing import Optional, Sequence

from api.main import SERVICE_NAME, create_app, create_metrics_app, create_private_app
from clients.auth import AuthClient, AuthClientConfig, ExternalAuthClient
from lifecycle import ServerConfig, ServerTask, SignalBridge, Supervisor
from managers import ConfigError, ConfigManager
from metrics.context import MetricsContext
from models.enums import LogCategory, LogLevel
from models.options import ServiceOptions
from utils.logger import configure_logger, get_logger

# ---------------------------------------------------------------------------
# LOGGER SETUP
# ---------------------------------------------------------------------------

log = get_logger().for_category(LogCategory.SYSTEM)


def server_config(options: ServiceOptions, port: int) -> ServerConfig:
    return ServerConfig(
        host=options.host,
        port=port,
        read_timeout=options.read_timeout,
        write_timeout=options.write_timeout,
        log_level="debug" if options.debug else "info",
    )


async def supervise(supervisor: Supervisor) -> Optional[BaseException]:
    """Run the supervisor with SIGINT / SIGTERM bridged to its shutdown signal."""
    bridge = SignalBridge(supervisor.shutdown_signal)
    bridge.install(asyncio.get_running_loop())
    try:
        return await supervisor.run()
    finally:
        bridge.uninstall()


# ---------------------------------------------------------------------------
# Application Entry
# ---------------------------------------------------------------------------

async def run(
    options: ServiceOptions,
    supervisor: Optional[Supervisor] = None,
    auth_client: Optional[AuthClient] = None,
) -> Optional[BaseException]:
    """
    Build every server and run them until shutdown.

    Returns:
        The first error reported by the supervisor, None on clean shutdown
    """
    supervisor = supervisor or Supervisor()

    # ========================================================================
    # 1. SHARED COLLABORATORS
    # ========================================================================

    metrics = MetricsContext(SERVICE_NAME) if options.metrics else None

    owned_client: Optional[ExternalAuthClient] = None
    if options.api and options.auth and auth_client is None:
        owned_client = ExternalAuthClient(AuthClientConfig(options.auth_host, options.private_host))
        auth_client = owned_client

    # ========================================================================
    # 2. SERVERS
    # ========================================================================

    if options.api:
        app = create_app(options, metrics=metrics, auth_client=auth_client)
        supervisor.register(ServerTask("api", app, server_config(options, options.api_port)))

    if metrics is not None:
        supervisor.register(ServerTask("metrics", create_metrics_app(metrics), server_config(options, options.metrics_port)))

    private_app = create_private_app(options, supervisor=supervisor)
    supervisor.register(ServerTask("private", private_app, server_config(options, options.private_port)))

    # ========================================================================
    # 3. RUN UNTIL SHUTDOWN
    # ========================================================================

    log.info("🏁 Servers registered. Waiting for exit signal...")
    try:
        return await supervise(supervisor)
    finally:
        if owned_client is not None:
            await owned_client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Process entry point. Returns the exit status."""
    try:
        options = ConfigManager().load(argv)
    except ConfigError as e:
        log.error(f"Invalid configuration: {e}")
        return 1

    configure_logger(
        min_level=LogLevel.DEBUG if options.debug else LogLevel.INFO,
        dev_mode=options.dev_mode,
    )
    log.info(f"Starting {SERVICE_NAME}...")

    try:
        error = asyncio.run(run(options))
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received")
        return 130
    except Exception as e:
        log.error(f"Fatal error: {e}", exc_info=True)
        return 1

    if error is not None:
        log.error(f"Fatal error: {error}")
        return 1

    log.info(f"👋 {SERVICE_NAME} shut down cleanly.")
    return 0


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
