"""TaskQueue -- 任务队列与状态机

有序任务集合 + QueueSystemState。认领、状态流转与统计更新都在同一把
asyncio.Lock 下完成；worker 通过 claim_next() 认领，通过 finish() 回报结果。

不变量：completed_count + |{ERROR,CANCELED,FAILED}| + |{WAITING,PROCESSING}| == total_count
"""

import asyncio
import itertools
from collections.abc import Iterable
from typing import Any

import structlog
from quillflow.core.models import (
    ACTIVE_STATES,
    RESUBMITTABLE_STATES,
    ErrorKind,
    GenerationSettings,
    QualityReport,
    QueueSystemState,
    Task,
    TaskStatus,
    TaskSubmission,
    utc_now,
    validate_transition,
)
from ulid import ULID

from .cancellation import CancelToken
from .errors import (
    InvalidTransitionError,
    QueueDisabledError,
    TaskNotFoundError,
    TaskProcessingError,
)
from .progress import ProgressReporter

log = structlog.get_logger()


class TaskQueue:
    """任务队列"""

    def __init__(self, reporter: ProgressReporter | None = None) -> None:
        self._reporter = reporter or ProgressReporter()
        self._tasks: dict[str, Task] = {}
        # 认领顺序：(added_at, 入队序号)
        self._order: dict[str, int] = {}
        self._seq = itertools.count()
        self._tokens: dict[str, CancelToken] = {}
        self._current: list[str] = []

        self._enabled = True
        self._paused = False
        self._processing = False

        self._lock = asyncio.Lock()
        self._changed = asyncio.Condition(self._lock)

    @property
    def reporter(self) -> ProgressReporter:
        return self._reporter

    # ------------------------------------------------------------------
    # 查询（返回快照）
    # ------------------------------------------------------------------

    def get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task.model_copy(deep=True)

    def contains(self, task_id: str) -> bool:
        return task_id in self._tasks

    def list_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        """按入队顺序列出任务"""
        tasks = sorted(self._tasks.values(), key=self._claim_key)
        return [
            t.model_copy(deep=True) for t in tasks if status is None or t.status == status
        ]

    def state(self) -> QueueSystemState:
        return QueueSystemState(
            is_enabled=self._enabled,
            is_paused=self._paused,
            is_processing=self._processing,
            current_items=list(self._current),
            completed_count=self._reporter.completed_count,
            total_count=self._reporter.total_count,
            average_processing_time=self._reporter.average_processing_time,
        )

    # ------------------------------------------------------------------
    # 提交 / 删除
    # ------------------------------------------------------------------

    async def enqueue(
        self,
        input: Any,
        settings: GenerationSettings | dict[str, Any],
        title: str = "",
        kind: str = "write-story",
    ) -> str:
        """提交单个任务，返回 task_id"""
        submission = TaskSubmission(
            input=input,
            settings=GenerationSettings.model_validate(settings),
            title=title,
            kind=kind,
        )
        task_ids = await self.enqueue_many([submission])
        return task_ids[0]

    async def enqueue_many(self, items: Iterable[TaskSubmission | dict[str, Any]]) -> list[str]:
        """批量提交；全部校验通过后一次性入队

        入队的是提交内容的深拷贝，调用方之后修改原对象不影响已入队任务。
        """
        submissions = [
            TaskSubmission.model_validate(item).model_copy(deep=True) for item in items
        ]

        async with self._changed:
            created: list[Task] = []
            for submission in submissions:
                task = Task(
                    task_id=str(ULID()),
                    title=submission.title,
                    kind=submission.kind,
                    input=submission.input,
                    settings=submission.settings,
                )
                self._tasks[task.task_id] = task
                self._order[task.task_id] = next(self._seq)
                self._reporter.task_added()
                created.append(task)

            for task in created:
                await self._reporter.publish_task(task)
            if created:
                await self._reporter.publish_stats()
            self._changed.notify_all()

        log.info("tasks_enqueued", count=len(created))
        return [t.task_id for t in created]

    async def remove(self, task_id: str) -> None:
        """删除非 PROCESSING 的任务"""
        async with self._changed:
            task = self._require(task_id)
            if task.status == TaskStatus.PROCESSING:
                raise TaskProcessingError(task_id)

            del self._tasks[task_id]
            self._order.pop(task_id, None)
            self._reporter.task_removed(task)
            await self._reporter.publish_stats()
            self._changed.notify_all()

        log.info("task_removed", task_id=task_id, status=task.status)

    async def clear(self) -> None:
        """取消进行中的任务，清空队列并重置统计

        被清除的 WAITING / PROCESSING 任务先以 CANCELED 推送，单任务订阅者可据此结束。
        """
        async with self._changed:
            canceled = [
                task for task in self._tasks.values() if task.status in ACTIVE_STATES
            ]
            for task in canceled:
                self._cancel_locked(task, "queue cleared")
                log.info("task_canceled", task_id=task.task_id, reason="queue cleared")
            for task in canceled:
                await self._reporter.publish_task(task)

            self._tokens.clear()
            self._tasks.clear()
            self._order.clear()
            self._current.clear()
            self._reporter.reset()
            await self._reporter.publish_stats()
            self._changed.notify_all()

        log.info("queue_cleared")

    # ------------------------------------------------------------------
    # 队列控制
    # ------------------------------------------------------------------

    async def start(self) -> None:
        async with self._changed:
            if not self._enabled:
                raise QueueDisabledError()
            self._processing = True
            self._paused = False
            self._changed.notify_all()
        log.info("queue_started")

    async def pause(self) -> None:
        """暂停认领；进行中的任务不受影响"""
        async with self._changed:
            self._paused = True
        log.info("queue_paused")

    async def resume(self) -> None:
        async with self._changed:
            self._paused = False
            self._changed.notify_all()
        log.info("queue_resumed")

    async def stop(self) -> None:
        """取消所有 WAITING / PROCESSING 任务，并停止处理"""
        async with self._changed:
            canceled = [
                task for task in self._tasks.values() if task.status in ACTIVE_STATES
            ]
            for task in canceled:
                self._cancel_locked(task, "queue stopped")
            self._processing = False
            self._paused = False

            for task in canceled:
                await self._reporter.publish_task(task)
            if canceled:
                await self._reporter.publish_stats()
            self._changed.notify_all()

        log.info("queue_stopped", canceled_count=len(canceled))

    async def enable(self) -> None:
        async with self._changed:
            self._enabled = True
        log.info("queue_enabled")

    async def disable(self) -> None:
        """停止队列；再次 enable() 前 start() 会被拒绝"""
        await self.stop()
        async with self._changed:
            self._enabled = False
        log.info("queue_disabled")

    # ------------------------------------------------------------------
    # 单任务命令
    # ------------------------------------------------------------------

    async def cancel(self, task_id: str, reason: str = "canceled by user") -> bool:
        """取消任务

        WAITING / PROCESSING 同步进入 CANCELED；其余状态无操作。

        Returns:
            True 表示本次调用改变了任务状态
        """
        async with self._changed:
            task = self._require(task_id)
            if task.status not in ACTIVE_STATES:
                return False
            self._cancel_locked(task, reason)
            await self._reporter.publish_task(task)
            await self._reporter.publish_stats()
            self._changed.notify_all()

        log.info("task_canceled", task_id=task_id, reason=reason)
        return True

    async def resubmit(self, task_id: str) -> None:
        """ERROR / CANCELED -> WAITING，重置进度与结果并排到队尾"""
        async with self._changed:
            task = self._require(task_id)
            if task.status not in RESUBMITTABLE_STATES:
                raise InvalidTransitionError(task_id, task.status, TaskStatus.WAITING)

            task.status = TaskStatus.WAITING
            task.progress = 0
            task.output = None
            task.error = None
            task.error_kind = None
            task.quality_report = None
            task.started_at = None
            task.completed_at = None
            task.added_at = utc_now()
            self._order[task_id] = next(self._seq)

            await self._reporter.publish_task(task)
            self._changed.notify_all()

        log.info("task_resubmitted", task_id=task_id)

    # ------------------------------------------------------------------
    # Worker 接口
    # ------------------------------------------------------------------

    async def claim_next(self) -> tuple[Task, CancelToken]:
        """认领最早入队的 WAITING 任务

        队列未启动、暂停或没有待处理任务时阻塞。
        每次认领签发新的 CancelToken。
        """
        async with self._changed:
            while True:
                task = self._next_claimable()
                if task is not None:
                    break
                await self._changed.wait()

            task.status = TaskStatus.PROCESSING
            task.started_at = utc_now()
            task.progress = 0
            token = CancelToken()
            self._tokens[task.task_id] = token
            self._current.append(task.task_id)

            await self._reporter.publish_task(task)
            return task.model_copy(deep=True), token

    async def report_progress(self, task_id: str, token: CancelToken, progress: int) -> None:
        """更新进度；只增不减，令牌失效后忽略"""
        async with self._changed:
            task = self._tasks.get(task_id)
            if task is None or not self._owns(task_id, token):
                return
            progress = min(100, max(0, progress))
            if task.status != TaskStatus.PROCESSING or progress <= task.progress:
                return
            task.progress = progress
            await self._reporter.publish_task(task)

    async def finish(
        self,
        task_id: str,
        token: CancelToken,
        status: TaskStatus,
        *,
        output: str | None = None,
        error: str | None = None,
        error_kind: ErrorKind | None = None,
        quality_report: QualityReport | None = None,
    ) -> bool:
        """记录终态

        令牌已被取消或已失效（任务被取消、删除、清空）时丢弃结果，取消优先。

        Returns:
            True 表示结果已生效
        """
        async with self._changed:
            task = self._tasks.get(task_id)
            if task is None or not self._owns(task_id, token) or token.is_cancelled:
                log.info("late_result_discarded", task_id=task_id, status=status)
                return False
            if not validate_transition(task.status, status):
                raise InvalidTransitionError(task_id, task.status, status)

            task.status = status
            task.completed_at = utc_now()
            if status == TaskStatus.COMPLETED:
                task.progress = 100
                task.output = output
                task.quality_report = quality_report
                self._reporter.task_completed(task.processing_seconds or 0.0)
            else:
                task.error = error
                task.error_kind = error_kind

            self._tokens.pop(task_id, None)
            self._release(task_id)

            await self._reporter.publish_task(task)
            await self._reporter.publish_stats()
            self._changed.notify_all()
            return True

    async def join(self) -> None:
        """等待队列中不再有 WAITING / PROCESSING 任务"""
        async with self._changed:
            await self._changed.wait_for(
                lambda: not any(t.status in ACTIVE_STATES for t in self._tasks.values())
            )

    # ------------------------------------------------------------------
    # 内部方法（调用方持有锁）
    # ------------------------------------------------------------------

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _claim_key(self, task: Task) -> tuple:
        return (task.added_at, self._order.get(task.task_id, 0))

    def _next_claimable(self) -> Task | None:
        if not (self._enabled and self._processing) or self._paused:
            return None
        waiting = [t for t in self._tasks.values() if t.status == TaskStatus.WAITING]
        if not waiting:
            return None
        return min(waiting, key=self._claim_key)

    def _owns(self, task_id: str, token: CancelToken) -> bool:
        return self._tokens.get(task_id) is token

    def _release(self, task_id: str) -> None:
        if task_id in self._current:
            self._current.remove(task_id)

    def _cancel_locked(self, task: Task, reason: str) -> None:
        token = self._tokens.pop(task.task_id, None)
        if token is not None:
            token.cancel(reason)
        task.status = TaskStatus.CANCELED
        task.error = reason
        task.error_kind = ErrorKind.CANCELED
        task.completed_at = utc_now()
        self._release(task.task_id)
