"""
Supervised task protocol.

A Task is the whole contract a component has to satisfy to be run by the
Supervisor: a name, a start action and an optional stop action that takes
an absolute deadline (event loop time, seconds).
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

StartAction = Callable[[], Awaitable[Any]]
StopAction = Callable[[float], Awaitable[Any]]


class ISupervisedTask(Protocol):
    """
    Protocol for components that can be supervised directly.

    Example:
        class Worker:
            name = "worker"

            async def start(self) -> None:
                await self._loop_forever()

            async def stop(self, deadline: float) -> None:
                self._running = False
    """

    name: str

    async def start(self) -> None:
        """Run until stopped. Raising means the task failed."""
        ...

    async def stop(self, deadline: float) -> None:
        """Stop gracefully before `deadline` (loop.time() seconds)."""
        ...


@dataclass(frozen=True)
class Task:
    """Immutable unit of supervised work."""
    name: str
    start: StartAction
    stop: Optional[StopAction] = None

    @classmethod
    def from_component(cls, component: Any) -> "Task":
        """
        Build a Task from an object implementing ISupervisedTask.

        Raises:
            ValueError: if the object is missing name/start
        """
        if isinstance(component, Task):
            return component
        name = getattr(component, "name", None)
        start = getattr(component, "start", None)
        if not isinstance(name, str) or not name:
            raise ValueError(f"Task {component!r} missing name")
        if not callable(start):
            raise ValueError(f"Task {name} missing start() method")
        stop = getattr(component, "stop", None)
        if stop is not None and not callable(stop):
            raise ValueError(f"Task {name} stop is not callable")
        return cls(name=name, start=start, stop=stop)
