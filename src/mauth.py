"""
mauth.py — mock auth service for local testing
----------------------------------------------

Serves the endpoints the auth client calls, always answering for user 2:

    python src/mauth.py --port 9090
    curl -i localhost:9090/cookie        # Set-Cookie: SID=2
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from api.main import create_mock_auth_app
from lifecycle import ServerConfig, ServerTask, Supervisor
from main_asyncio import supervise
from models.enums import LogCategory, LogLevel
from utils.logger import configure_logger, get_logger

log = get_logger().for_category(LogCategory.SYSTEM)

DEFAULT_PORT = 9090


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mauth", description="Mock auth service")
    parser.add_argument("--host", default="0.0.0.0", help="Address to bind (default: 0.0.0.0).")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port to listen on (default: {DEFAULT_PORT}).")
    parser.add_argument("-d", "--debug", action="store_true", help="Run with debug logging.")
    parser.add_argument("--dev-mode", action="store_true", help="Enables logging dev mode.")
    return parser


async def run(host: str, port: int, supervisor: Optional[Supervisor] = None) -> Optional[BaseException]:
    supervisor = supervisor or Supervisor()
    supervisor.register(ServerTask("mauth", create_mock_auth_app(), ServerConfig(host=host, port=port)))
    return await supervise(supervisor)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logger(
        min_level=LogLevel.DEBUG if args.debug else LogLevel.INFO,
        dev_mode=args.dev_mode,
    )

    try:
        error = asyncio.run(run(args.host, args.port))
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received")
        return 130

    if error is not None:
        log.error(f"Fatal error: {error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
