"""
Models package - Enums, options and request-scoped data
"""

from .enums import LogLevel, LogCategory, TaskState, Entity
from .identity import RequestIdentity
from .options import ServiceOptions

__all__ = [
    'LogLevel',
    'LogCategory',
    'TaskState',
    'Entity',
    'RequestIdentity',
    'ServiceOptions',
]
