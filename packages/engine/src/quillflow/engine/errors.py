"""引擎异常体系

- TaskCanceledError: 取消不是错误，任何挂起点观察到取消令牌时抛出
- GenerationError: 重试耗尽或不可重试的失败，携带错误分类与尝试次数
- QueueError: 队列命令错误（由网关映射为 HTTP 4xx）
"""

from quillflow.core.models import ErrorKind, TaskStatus


class TaskCanceledError(Exception):
    """任务已被取消"""

    def __init__(self, reason: str = "canceled") -> None:
        super().__init__(reason)
        self.reason = reason


class GenerationError(Exception):
    """生成失败（已分类）"""

    def __init__(self, message: str, kind: ErrorKind, attempts: int = 1) -> None:
        """
        Args:
            message: 最后一次失败的错误信息
            kind: 错误分类
            attempts: 实际尝试次数
        """
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.attempts = attempts


class QueueError(Exception):
    """队列命令错误基类"""

    code: str = "QUEUE_ERROR"


class TaskNotFoundError(QueueError):
    """任务不存在"""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskProcessingError(QueueError):
    """任务正在处理中，不允许该操作"""

    code = "TASK_PROCESSING"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} is processing; cancel it first")
        self.task_id = task_id


class InvalidTransitionError(QueueError):
    """非法状态流转"""

    code = "INVALID_TRANSITION"

    def __init__(self, task_id: str, from_status: TaskStatus, to_status: TaskStatus) -> None:
        super().__init__(
            f"Task {task_id} cannot transition from {from_status} to {to_status}"
        )
        self.task_id = task_id
        self.from_status = from_status
        self.to_status = to_status


class QueueDisabledError(QueueError):
    """队列已禁用"""

    code = "QUEUE_DISABLED"

    def __init__(self) -> None:
        super().__init__("Queue is disabled")
