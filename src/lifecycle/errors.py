"""
Lifecycle error kinds

Every error a supervised task produces ends up in the Supervisor's outcome;
these are the ones the lifecycle layer raises itself.
"""

from typing import Optional, Tuple


class LifecycleError(Exception):
    """Base class for lifecycle runner errors"""


class BindOrAcceptFailure(LifecycleError):
    """A server task could not begin serving (bind/listen/startup failed)"""

    def __init__(self, name: str, address: Tuple[str, int], cause: Optional[object] = None):
        self.name = name
        self.address = address
        self.cause = cause
        host, port = address
        message = f"{name}: failed serving on {host}:{port}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ShutdownTimeout(LifecycleError, TimeoutError):
    """A stop action did not finish before its deadline"""

    def __init__(self, name: str, timeout: float):
        self.name = name
        self.timeout = timeout
        super().__init__(f"{name}: failed shutdown, deadline of {timeout:g}s exceeded")


class AlreadyRunning(LifecycleError):
    """register() or run() called after the supervisor started running"""

    def __init__(self, message: str = "supervisor is already running; registration is closed"):
        super().__init__(message)
