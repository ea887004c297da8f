"""
Single-fire shutdown broadcast.

Once fired it stays fired; firing again is a no-op.
"""

import asyncio
import time
from typing import Optional

from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


def _now() -> float:
    try:
        return asyncio.get_running_loop().time()
    except RuntimeError:
        # No running loop: the default loop clock is time.monotonic()
        return time.monotonic()


class ShutdownSignal:
    """
    Idempotent broadcast telling every supervised task to stop.

    Example:
        signal = ShutdownSignal()
        signal.fire("SIGTERM")   # True
        signal.fire("again")     # False, reason stays "SIGTERM"
        await signal.wait()      # returns immediately
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._fired_at: Optional[float] = None

    def fire(self, reason: str = "requested") -> bool:
        """
        Fire the signal.

        Returns:
            True if this call fired it, False if it had already fired
        """
        if self._event.is_set():
            log.debug(f"Shutdown already requested ({self._reason}), ignoring: {reason}")
            return False
        self._reason = reason
        self._fired_at = _now()
        self._event.set()
        log.info(f"Shutdown requested → {reason}")
        return True

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def fired_at(self) -> Optional[float]:
        """Loop time of the first fire(), None until fired."""
        return self._fired_at
