from __future__ import annotations
import asyncio
import contextlib
import socket
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import uvicorn

from lifecycle.errors import BindOrAcceptFailure, ShutdownTimeout
from lifecycle.task import Task
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SERVER)

LISTEN_BACKLOG = 2048


@dataclass(frozen=True)
class ServerConfig:
    """Listener configuration for one HTTP server."""
    host: str = "0.0.0.0"
    port: int = 8080
    read_timeout: float = 5.0    # keep-alive idle timeout
    write_timeout: float = 10.0  # per-request handler deadline, 0 disables
    limit_concurrency: Optional[int] = None
    log_level: str = "info"
    lifespan: str = "off"        # "auto" / "on" for apps with startup/shutdown handlers

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class _UvicornServer(uvicorn.Server):
    """uvicorn.Server that leaves SIGINT/SIGTERM to the SignalBridge."""

    def install_signal_handlers(self) -> None:  # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # uvicorn >= 0.29
        yield


class _WriteDeadline:
    """ASGI wrapper bounding how long an HTTP handler may take to respond."""

    def __init__(self, app: Any, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warn(f"Handler exceeded write timeout ({self.timeout:g}s): {scope.get('path')}")
            if response_started:
                # Partial response already on the wire; let the server drop the connection
                raise
            body = b"Service Unavailable"
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(body)).encode()),
                ],
            })
            await send({"type": "http.response.body", "body": body})


class ServerTask:
    """
    Runs an ASGI app under uvicorn as a supervised task.

    Behaviour:
      - start() binds the listening socket, serves until stop() is called and
        then returns normally. A socket that cannot be bound, or a server that
        aborts its startup, raises BindOrAcceptFailure.
      - stop(deadline) asks uvicorn to exit: it stops accepting, drains
        in-flight requests and returns once start() has finished. If the drain
        is still running at the deadline, remaining connections are aborted and
        ShutdownTimeout is raised.
      - uvicorn's own signal handlers are disabled; the SignalBridge owns
        SIGINT/SIGTERM.
    """

    def __init__(self, name: str, app: Any, config: Optional[ServerConfig] = None):
        self.name = name
        self.app = app
        self.config = config or ServerConfig()
        self._server: Optional[uvicorn.Server] = None
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._stopping = False
        self._stopped = asyncio.Event()
        self._stopped.set()

    # ----------------------------------------------------------------------
    # INTERNAL
    # ----------------------------------------------------------------------
    def _bind(self) -> socket.socket:
        """Bind and listen on the configured address (SO_REUSEADDR)."""
        host, port = self.config.host, self.config.port
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(LISTEN_BACKLOG)
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            log.error(f"Cannot bind {self.name} server to {self.config.address}: {e}")
            raise BindOrAcceptFailure(self.name, (host, port), e) from e
        self._address = sock.getsockname()[:2]
        return sock

    def _create_server(self) -> uvicorn.Server:
        app = self.app
        if self.config.write_timeout:
            app = _WriteDeadline(app, self.config.write_timeout)

        config = uvicorn.Config(
            app=app,
            host=self.config.host,
            port=self.config.port,
            loop="asyncio",
            lifespan=self.config.lifespan,
            log_level=self.config.log_level,
            access_log=False,
            server_header=False,
            timeout_keep_alive=self.config.read_timeout,
            limit_concurrency=self.config.limit_concurrency,
            backlog=LISTEN_BACKLOG,
        )
        return _UvicornServer(config)

    def _close_listeners(self, server: uvicorn.Server, sock: socket.socket) -> None:
        for listener in getattr(server, "servers", None) or []:
            listener.close()
        sock.close()

    def _abort(self) -> None:
        """Stop waiting for the drain and drop every open connection."""
        server = self._server
        if server is None:
            return
        server.force_exit = True
        connections = getattr(server.server_state, "connections", ())
        aborted = 0
        for connection in list(connections):
            transport = getattr(connection, "transport", None)
            if transport is not None and not transport.is_closing():
                transport.abort()
                aborted += 1
        if aborted:
            log.warn(f"🌐 Aborted {aborted} connection(s) on {self.name}")

    # ----------------------------------------------------------------------
    # PUBLIC API
    # ----------------------------------------------------------------------
    async def start(self) -> None:
        """
        Serve until stopped.

        Returns normally after stop(); raises BindOrAcceptFailure if the
        server cannot begin serving.
        """
        if self.is_running:
            raise RuntimeError(f"{self.name} server already started")

        sock = self._bind()
        server = self._create_server()
        self._socket = sock
        self._server = server
        self._stopping = False
        self._stopped.clear()

        host, port = self._address
        log.info(f"🌐 Serving {self.name} on http://{host}:{port}")

        try:
            await server.serve(sockets=[sock])
        except SystemExit as e:
            # uvicorn exits the process when its startup fails
            raise BindOrAcceptFailure(self.name, self._address, f"startup aborted (exit code {e.code})") from None
        except OSError as e:
            raise BindOrAcceptFailure(self.name, self._address, e) from e
        except asyncio.CancelledError:
            log.debug(f"🌐 {self.name} serve cancelled")
            self._abort()
            raise
        finally:
            self._close_listeners(server, sock)
            self._stopped.set()

        if not server.started and not self._stopping:
            raise BindOrAcceptFailure(self.name, self._address, "server exited before accepting connections")

        log.debug(f"🌐 {self.name} closed")

    async def stop(self, deadline: float) -> None:
        """
        Gracefully stop the server before `deadline` (loop.time() seconds).

        Raises:
            ShutdownTimeout: if in-flight requests were still draining at the deadline
        """
        server = self._server
        if server is None or self._stopped.is_set():
            log.warn(f"🌐 {self.name} stop() called but server was not running")
            return

        log.info(f"🌐 Stopping {self.name} server...")
        self._stopping = True
        server.should_exit = True

        loop = asyncio.get_running_loop()
        budget = max(deadline - loop.time(), 0.0)
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=budget)
        except asyncio.TimeoutError:
            log.warn(f"🌐 {self.name} drain exceeded deadline; aborting connections")
            self._abort()
            raise ShutdownTimeout(self.name, budget) from None
        except asyncio.CancelledError:
            self._abort()
            raise

        log.info(f"🌐 {self.name} stopped and port released")

    def as_task(self) -> Task:
        return Task(name=self.name, start=self.start, stop=self.stop)

    # ----------------------------------------------------------------------
    # PROPERTIES
    # ----------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._server is not None and not self._stopped.is_set()

    @property
    def started(self) -> bool:
        """True once uvicorn has finished startup and is accepting."""
        return self._server is not None and bool(getattr(self._server, "started", False))

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) actually bound; useful with port 0."""
        return self._address

    @property
    def server(self) -> Optional[uvicorn.Server]:
        return self._server
