"""
Outcome aggregator: keeps the one error `Supervisor.run()` reports.

Priority:
1. the first start failure observed (it is what triggered shutdown)
2. otherwise the stop failure of the earliest-registered task
3. otherwise success (None)

Everything else is logged and dropped.
"""

import threading
from typing import Optional, Tuple

from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LIFECYCLE)


class OutcomeAggregator:

    def __init__(self):
        self._lock = threading.Lock()
        self._start_failure: Optional[Tuple[str, BaseException]] = None
        self._stop_failure: Optional[Tuple[int, str, BaseException]] = None

    def record_start_failure(self, name: str, error: BaseException) -> bool:
        """Record a failed start action. Returns True if it became the winner."""
        with self._lock:
            if self._start_failure is None:
                self._start_failure = (name, error)
                return True
        log.debug(f"Additional start failure from {name} not reported: {error}")
        return False

    def record_stop_failure(self, index: int, name: str, error: BaseException) -> bool:
        """Record a failed stop action of the task registered at `index`."""
        with self._lock:
            current = self._stop_failure
            if current is None or index < current[0]:
                self._stop_failure = (index, name, error)
                return self._start_failure is None
        log.debug(f"Additional stop failure from {name} not reported: {error}")
        return False

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            if self._start_failure is not None:
                return self._start_failure[1]
            if self._stop_failure is not None:
                return self._stop_failure[2]
            return None

    @property
    def failed_task(self) -> Optional[str]:
        """Name of the task whose error is reported."""
        with self._lock:
            if self._start_failure is not None:
                return self._start_failure[0]
            if self._stop_failure is not None:
                return self._stop_failure[1]
            return None
