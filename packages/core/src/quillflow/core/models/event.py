"""Queue Event Models

引擎 -> 调用方的事件：TaskUpdated（单任务状态/进度变化）与
QueueStatsUpdated（队列聚合统计变化）。
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .enums import QueueEventType, TaskStatus
from .task import utc_now


class TaskUpdated(BaseModel):
    """任务状态或进度变化"""

    type: Literal[QueueEventType.TASK_UPDATED] = QueueEventType.TASK_UPDATED
    task_id: str
    status: TaskStatus
    progress: int = Field(ge=0, le=100)
    output: str | None = None
    error: str | None = None
    ts: datetime = Field(default_factory=utc_now)


class QueueStatsUpdated(BaseModel):
    """队列聚合统计变化"""

    type: Literal[QueueEventType.QUEUE_STATS_UPDATED] = (
        QueueEventType.QUEUE_STATS_UPDATED
    )
    completed_count: int = Field(ge=0)
    total_count: int = Field(ge=0)
    average_processing_time: float = Field(ge=0.0)
    ts: datetime = Field(default_factory=utc_now)


QueueEvent = TaskUpdated | QueueStatsUpdated
