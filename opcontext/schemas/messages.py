"""Pydantic wire models for notices and tasks leaving the process."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..domain.operation.models import Notice, Task


class NoticeMessage(BaseModel):
    """A notice as published to a notifier channel"""

    target: str = Field(..., description="Notice target (channel suffix)")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Notice body")

    @classmethod
    def from_notice(cls, notice: Notice) -> "NoticeMessage":
        return cls(target=notice.target, payload=dict(notice.payload))


class TaskMessage(BaseModel):
    """A task as handed to the worker queue"""

    name: str = Field(..., description="Registered worker task name")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Task keyword arguments")
    delay: Optional[float] = Field(None, ge=0, description="Seconds before the task may run")
    ttl: Optional[float] = Field(None, gt=0, description="Seconds after which the task expires")

    @classmethod
    def from_task(cls, task: Task) -> "TaskMessage":
        return cls(name=task.name, payload=dict(task.payload), delay=task.delay, ttl=task.ttl)
