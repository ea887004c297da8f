"""
Lifecycle subsystem
-------------------

Exports the public API for:
- supervised tasks and the supervisor running them
- HTTP servers as tasks
- shutdown signalling (OS signals included)

Internal modules remain private. External code should import from:
    from lifecycle import Supervisor, ServerTask, ServerConfig, SignalBridge
"""

from .errors import LifecycleError, BindOrAcceptFailure, ShutdownTimeout, AlreadyRunning
from .task import Task, ISupervisedTask
from .shutdown_signal import ShutdownSignal
from .task_registry import TaskRegistry, TaskRecord, TaskInfo
from .supervisor import Supervisor, SHUTDOWN_TIMEOUT
from .server_task import ServerTask, ServerConfig
from .signal_bridge import SignalBridge

__all__ = [
    "LifecycleError",
    "BindOrAcceptFailure",
    "ShutdownTimeout",
    "AlreadyRunning",
    "Task",
    "ISupervisedTask",
    "ShutdownSignal",
    "TaskRegistry",
    "TaskRecord",
    "TaskInfo",
    "Supervisor",
    "SHUTDOWN_TIMEOUT",
    "ServerTask",
    "ServerConfig",
    "SignalBridge",
]
