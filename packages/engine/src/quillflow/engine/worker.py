"""WorkerPool -- 固定数量的长生命周期 worker 循环

每个 worker：认领任务 -> 配额检查 -> ChunkedGenerator -> 回报终态 -> 继续认领。
单个任务的失败只影响该任务本身。
"""

import asyncio
import contextlib
from functools import partial

import structlog
from quillflow.core.config import ERROR_PREVIEW_LENGTH
from quillflow.core.models import ErrorKind, Task, TaskStatus
from quillflow.provider.classifier import classify_error
from quillflow.provider.exceptions import QuotaDeniedError
from quillflow.provider.protocols import QuotaGate
from quillflow.provider.quota import AllowAllQuotaGate

from .cancellation import CancelToken, run_cancellable
from .chunking import ChunkedGenerator
from .errors import GenerationError, TaskCanceledError, TaskNotFoundError
from .queue import TaskQueue

log = structlog.get_logger()


def _truncate(message: str, limit: int) -> str:
    if len(message) <= limit:
        return message
    return message[: limit - 3] + "..."


class WorkerPool:
    """worker 池"""

    def __init__(
        self,
        queue: TaskQueue,
        generator: ChunkedGenerator,
        quota_gate: QuotaGate | None = None,
        size: int = 1,
        error_preview_length: int = ERROR_PREVIEW_LENGTH,
    ) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        self._queue = queue
        self._generator = generator
        self._quota_gate = quota_gate or AllowAllQuotaGate()
        self._size = size
        self._error_preview_length = error_preview_length
        self._workers: list[asyncio.Task] = []

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_running(self) -> bool:
        return any(not w.done() for w in self._workers)

    def start(self) -> None:
        """启动 worker 循环（重复调用无副作用）"""
        if self.is_running:
            return
        self._workers = [
            asyncio.create_task(self._worker_loop(f"worker-{i}"), name=f"quillflow-worker-{i}")
            for i in range(self._size)
        ]
        log.info("worker_pool_started", size=self._size)

    async def shutdown(self) -> None:
        """取消所有 worker 循环并等待退出"""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        log.info("worker_pool_stopped")

    async def _worker_loop(self, worker_id: str) -> None:
        while True:
            task, token = await self._queue.claim_next()
            try:
                await self.run_task(worker_id, task, token)
            except asyncio.CancelledError:
                raise
            except Exception:
                # run_task 已处理任务级异常；此处只防止 worker 退出
                log.exception("worker_loop_error", worker_id=worker_id, task_id=task.task_id)

    async def run_task(self, worker_id: str, task: Task, token: CancelToken) -> None:
        """执行单个已认领任务并回报终态"""
        with structlog.contextvars.bound_contextvars(worker_id=worker_id, task_id=task.task_id):
            log.info("task_processing_started", kind=task.kind)
            try:
                await self._admit(task, token)
                outcome = await self._generator.run(
                    task,
                    token,
                    on_progress=partial(self._queue.report_progress, task.task_id, token),
                )
            except TaskCanceledError as e:
                log.info("task_processing_canceled", reason=e.reason)
            except QuotaDeniedError as e:
                await self._fail(task, token, TaskStatus.FAILED, e.reason, ErrorKind.QUOTA_DENIED)
            except GenerationError as e:
                status = (
                    TaskStatus.FAILED if e.kind == ErrorKind.QUOTA_DENIED else TaskStatus.ERROR
                )
                await self._fail(task, token, status, e.message, e.kind)
            except asyncio.CancelledError:
                with contextlib.suppress(TaskNotFoundError):
                    await self._queue.cancel(task.task_id, reason="worker shutdown")
                raise
            except Exception as e:
                log.exception("task_processing_crashed", error_type=type(e).__name__)
                await self._fail(
                    task, token, TaskStatus.ERROR, str(e) or type(e).__name__, classify_error(e)
                )
            else:
                applied = await self._queue.finish(
                    task.task_id,
                    token,
                    TaskStatus.COMPLETED,
                    output=outcome.text,
                    quality_report=outcome.quality_report,
                )
                if applied:
                    log.info(
                        "task_processing_completed",
                        units=outcome.units,
                        chunk_count=outcome.chunk_count,
                        corrected=outcome.corrected,
                    )

    async def _admit(self, task: Task, token: CancelToken) -> None:
        decision = await run_cancellable(partial(self._quota_gate.admit, task.kind, 1), token)
        if not decision.allowed:
            raise QuotaDeniedError(decision.reason or "quota denied", action_kind=task.kind)
        if decision.reason:
            log.warning("quota_admitted_with_warning", reason=decision.reason)

    async def _fail(
        self,
        task: Task,
        token: CancelToken,
        status: TaskStatus,
        message: str,
        kind: ErrorKind,
    ) -> None:
        applied = await self._queue.finish(
            task.task_id,
            token,
            status,
            error=_truncate(message, self._error_preview_length),
            error_kind=kind,
        )
        if applied:
            log.warning("task_processing_failed", status=status, error_kind=kind, error=message)
