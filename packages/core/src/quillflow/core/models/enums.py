"""枚举定义

包含 TaskStatus 状态机、ErrorKind 错误分类、QueueEventType 事件类型，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机

    FAILED 专用于配额拒绝（策略拦截），ERROR 表示上游/生成失败，
    调用方据此区分 "被策略阻止" 与 "被 provider 阻止"。
    """

    WAITING = "WAITING"
    PROCESSING = "PROCESSING"

    # 终态
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"
    CANCELED = "CANCELED"
    FAILED = "FAILED"


# 合法状态流转
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.WAITING: {TaskStatus.PROCESSING, TaskStatus.CANCELED},
    TaskStatus.PROCESSING: {
        TaskStatus.COMPLETED,
        TaskStatus.ERROR,
        TaskStatus.CANCELED,
        TaskStatus.FAILED,
    },
    # ERROR / CANCELED 可由用户显式重新提交
    TaskStatus.ERROR: {TaskStatus.WAITING},
    TaskStatus.CANCELED: {TaskStatus.WAITING},
    # COMPLETED / FAILED 不可再流转（只能删除后重建）
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.ERROR,
    TaskStatus.CANCELED,
    TaskStatus.FAILED,
}

# 计入 "未完成终态" 统计的状态
UNSUCCESSFUL_STATES: set[TaskStatus] = {
    TaskStatus.ERROR,
    TaskStatus.CANCELED,
    TaskStatus.FAILED,
}

# 仍在队列中活跃的状态
ACTIVE_STATES: set[TaskStatus] = {TaskStatus.WAITING, TaskStatus.PROCESSING}

RESUBMITTABLE_STATES: set[TaskStatus] = {TaskStatus.ERROR, TaskStatus.CANCELED}


class ErrorKind(StrEnum):
    """错误分类"""

    TRANSIENT_OVERLOAD = "transient_overload"
    TRANSIENT_SERVER = "transient_server"
    PERMANENT = "permanent"
    QUOTA_DENIED = "quota_denied"
    CANCELED = "canceled"


RETRYABLE_KINDS: set[ErrorKind] = {
    ErrorKind.TRANSIENT_OVERLOAD,
    ErrorKind.TRANSIENT_SERVER,
}


class QueueEventType(StrEnum):
    """对外事件类型"""

    TASK_UPDATED = "TASK_UPDATED"
    QUEUE_STATS_UPDATED = "QUEUE_STATS_UPDATED"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
