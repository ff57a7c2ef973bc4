"""QuillFlow Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    ACTIVE_STATES,
    RESUBMITTABLE_STATES,
    RETRYABLE_KINDS,
    TERMINAL_STATES,
    UNSUCCESSFUL_STATES,
    VALID_TRANSITIONS,
    ErrorKind,
    QueueEventType,
    TaskStatus,
    validate_transition,
)
from .event import QueueEvent, QueueStatsUpdated, TaskUpdated
from .task import (
    GenerationSettings,
    QualityReport,
    QueueSystemState,
    Task,
    TaskSubmission,
    utc_now,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "ErrorKind",
    "QueueEventType",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "UNSUCCESSFUL_STATES",
    "ACTIVE_STATES",
    "RESUBMITTABLE_STATES",
    "RETRYABLE_KINDS",
    "validate_transition",
    # Task
    "Task",
    "GenerationSettings",
    "QualityReport",
    "QueueSystemState",
    "TaskSubmission",
    "utc_now",
    # Event
    "TaskUpdated",
    "QueueStatsUpdated",
    "QueueEvent",
]
