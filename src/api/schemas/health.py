"""
Private server schemas - probes and task introspection
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ProbeResponse(BaseModel):
    status: str = Field(description="'ok' or 'shutting_down'")
    reason: Optional[str] = Field(None, description="Shutdown reason, once shutdown fired")


class TaskStatus(BaseModel):
    """State of one supervised task"""
    id: int
    name: str
    state: str = Field(description="registered | running | stopping | stopped | failed")
    registered_at: str
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class TaskListResponse(BaseModel):
    count: int
    shutting_down: bool
    tasks: List[TaskStatus]
