"""
Supervisor that runs a group of tasks and shuts them down together.

Starts every registered task concurrently, waits for the shared shutdown
signal (fired externally or by the first failing start action), then stops
every task concurrently with a common deadline and reports the first error.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

from lifecycle.errors import AlreadyRunning, ShutdownTimeout
from lifecycle.outcome import OutcomeAggregator
from lifecycle.shutdown_signal import ShutdownSignal
from lifecycle.task import ISupervisedTask, Task
from lifecycle.task_registry import TaskRecord, TaskRegistry
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LIFECYCLE)

SHUTDOWN_TIMEOUT = 30.0


class Supervisor:
    """
    Coordinates startup and graceful shutdown of multiple tasks.

    Example:
        supervisor = Supervisor()
        supervisor.register(ServerTask("api", api_app, ServerConfig(port=8081)))
        supervisor.register(Task("worker", worker.run, worker.stop))

        SignalBridge(supervisor.shutdown_signal).install(loop)
        error = await supervisor.run()
        if error is not None:
            ...
    """

    def __init__(self, shutdown_timeout: float = SHUTDOWN_TIMEOUT):
        """
        Initialize supervisor.

        Args:
            shutdown_timeout: Deadline given to every stop action, counted
                from the moment shutdown fired (seconds)
        """
        self._shutdown_timeout = shutdown_timeout
        self._signal = ShutdownSignal()
        self._outcome = OutcomeAggregator()
        self._registry = TaskRegistry()
        self._running = False
        self._finished = False

    # ----------------------------------------------------------------------
    # REGISTRATION
    # ----------------------------------------------------------------------
    def register(self, task: Union[Task, ISupervisedTask]) -> Task:
        """
        Register a task to be started by run().

        Args:
            task: Task, or any object with name / start() / stop(deadline)

        Returns:
            The normalised Task

        Raises:
            AlreadyRunning: if run() has already begun
            ValueError: if the object does not look like a task
        """
        if self._running:
            raise AlreadyRunning()

        normalised = Task.from_component(task)
        self._registry.register(normalised)
        return normalised

    # ----------------------------------------------------------------------
    # SHUTDOWN
    # ----------------------------------------------------------------------
    @property
    def shutdown_signal(self) -> ShutdownSignal:
        return self._signal

    def shutdown(self, reason: str = "requested") -> bool:
        """Request shutdown of every task. Safe to call any number of times."""
        return self._signal.fire(reason)

    @property
    def shutdown_timeout(self) -> float:
        return self._shutdown_timeout

    # ----------------------------------------------------------------------
    # RUN
    # ----------------------------------------------------------------------
    async def run(self) -> Optional[BaseException]:
        """
        Run every registered task until shutdown, then stop them all.

        Returns:
            The first error (start failures before stop failures), or None

        Raises:
            AlreadyRunning: if called more than once
        """
        if self._running:
            raise AlreadyRunning("supervisor.run() may only be called once")
        self._running = True

        records = self._registry.list_all()
        log.info(f"Starting {len(records)} task(s): {', '.join(r.info.name for r in records) or '-'}")

        start_units = [
            asyncio.create_task(self._run_start(record), name=f"{record.info.name}:start")
            for record in records
        ]
        stop_units: List[asyncio.Task] = []

        try:
            await self._signal.wait()
            # Idempotent; keeps the "fired" invariant explicit before stops begin
            self._signal.fire("shutdown")

            log.info(f"Stopping {len(records)} task(s), reason: {self._signal.reason}")
            deadline = self._signal.fired_at + self._shutdown_timeout

            stop_units = [
                asyncio.create_task(self._run_stop(index, record, deadline), name=f"{record.info.name}:stop")
                for index, record in enumerate(records)
            ]
            await asyncio.gather(*stop_units)

            await self._release_start_units(start_units)
        except asyncio.CancelledError:
            log.warn("Supervisor run() was cancelled, cancelling all tasks")
            self._signal.fire("run cancelled")
            units = start_units + stop_units
            for unit in units:
                unit.cancel()
            await asyncio.gather(*units, return_exceptions=True)
            raise
        finally:
            self._finished = True

        error = self._outcome.error
        if error is None:
            log.info(f"✓ All tasks stopped cleanly. {self._registry.summary()}")
        else:
            log.error(
                f"Run finished with error from {self._outcome.failed_task}: {error}",
                summary=self._registry.summary(),
            )
        return error

    async def _release_start_units(self, start_units: List[asyncio.Task]) -> None:
        """Join start actions; cancel those their stop action did not unblock."""
        pending = [unit for unit in start_units if not unit.done()]
        if not pending:
            return
        # One scheduling turn for starts that were just unblocked by their stop
        await asyncio.sleep(0)
        for unit in pending:
            if not unit.done():
                log.debug(f"Releasing start action {unit.get_name()} still pending after stop")
                unit.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _run_start(self, record: TaskRecord) -> None:
        name = record.info.name
        self._registry.mark_running(record)
        log.debug(f"Starting {name}")
        try:
            await record.task.start()
        except asyncio.CancelledError:
            # Released after the stop phase: a clean return
            log.debug(f"{name} start action released")
            self._registry.mark_stopped(record)
            raise
        except Exception as e:
            log.error(f"❌ {name} failed serving: {e}")
            self._registry.mark_failed(record, e)
            self._outcome.record_start_failure(name, e)
            self._signal.fire(f"Task failure: {name}")
            return

        # Clean return is not a failure and does not stop the siblings
        if not self._signal.is_set():
            log.info(f"ℹ️  {name} completed cleanly, other tasks keep running")
            self._registry.mark_stopped(record)
        else:
            log.debug(f"{name} start action returned")
            if record.task.stop is None:
                self._registry.mark_stopped(record)

    async def _run_stop(self, index: int, record: TaskRecord, deadline: float) -> None:
        name = record.info.name
        stop = record.task.stop
        if stop is None:
            log.debug(f"{name} has no stop action")
            return

        self._registry.mark_stopping(record)
        loop = asyncio.get_running_loop()
        timeout = max(deadline - loop.time(), 0.0)
        log.debug(f"Shutting down {name} (timeout={timeout:.1f}s)...")

        error: Optional[BaseException] = None
        try:
            await asyncio.wait_for(stop(deadline), timeout=timeout)
        except ShutdownTimeout as e:
            error = e
        except asyncio.TimeoutError:
            error = ShutdownTimeout(name, self._shutdown_timeout)
        except Exception as e:
            error = e

        if error is None:
            log.debug(f"✓ {name} shutdown complete")
            self._registry.mark_stopped(record)
            return

        if isinstance(error, ShutdownTimeout):
            log.error(f"⚠️  {name} shutdown timeout ({self._shutdown_timeout:g}s)")
        else:
            log.error(f"❌ {name} failed shutdown: {error}")
        self._registry.mark_failed(record, error)
        self._outcome.record_stop_failure(index, name, error)

    # ----------------------------------------------------------------------
    # INTROSPECTION
    # ----------------------------------------------------------------------
    @property
    def running(self) -> bool:
        """True between the start of run() and its return."""
        return self._running and not self._finished

    @property
    def tasks(self) -> List[Task]:
        return [r.task for r in self._registry.list_all()]

    def snapshot(self) -> List[Dict[str, Any]]:
        """State of every registered task, in registration order."""
        return self._registry.snapshot()
