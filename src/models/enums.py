"""
Enums shared across the servers, the lifecycle runner and the logger
"""

from enum import Enum, auto


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Option loading, validation
    SYSTEM = auto()      # Startup, fatal errors
    LIFECYCLE = auto()   # Supervisor run phases
    SHUTDOWN = auto()    # Shutdown signal, stop phase
    SIGNAL = auto()      # OS signal bridge
    TASK = auto()        # Individual supervised tasks
    SERVER = auto()      # Listener bind / serve / drain

    API = auto()
    HTTP = auto()        # Per-request access logging
    METRICS = auto()
    HEALTH = auto()
    AUTH = auto()

    GENERAL = auto()     # Default general category


class TaskState(Enum):
    """Lifecycle state of a supervised task"""
    REGISTERED = auto()  # Added to the supervisor, run() not started yet
    RUNNING = auto()     # Start action in flight
    STOPPING = auto()    # Stop action in flight
    STOPPED = auto()     # Finished without error
    FAILED = auto()      # Start or stop action raised


class Entity(str, Enum):
    """Kind of principal an API token belongs to"""
    USER = "user"
    ROBOT = "robot"
