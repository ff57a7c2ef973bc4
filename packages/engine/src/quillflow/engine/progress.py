"""ProgressReporter -- 聚合统计的唯一写入方

completed_count / total_count / average_processing_time 只由本类修改，
调用方（TaskQueue）在持有队列锁时调用，保证多 worker 下无丢失更新。
变化通过 EventHub 推送给订阅者。
"""

from quillflow.core.models import QueueStatsUpdated, Task, TaskStatus, TaskUpdated

from .events import EventHub


class ProgressReporter:
    """聚合统计与事件推送"""

    def __init__(self, hub: EventHub | None = None) -> None:
        self._hub = hub or EventHub()
        self._completed_count = 0
        self._total_count = 0
        self._average_processing_time = 0.0
        # 参与平均值计算的样本数（移除已完成任务不影响）
        self._samples = 0

    @property
    def hub(self) -> EventHub:
        return self._hub

    @property
    def completed_count(self) -> int:
        return self._completed_count

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def average_processing_time(self) -> float:
        return self._average_processing_time

    def task_added(self, count: int = 1) -> None:
        self._total_count += count

    def task_removed(self, task: Task) -> None:
        self._total_count -= 1
        if task.status == TaskStatus.COMPLETED:
            self._completed_count -= 1

    def task_completed(self, processing_seconds: float) -> None:
        """记录一次成功完成，更新滑动平均"""
        self._completed_count += 1
        self._samples += 1
        self._average_processing_time += (
            max(0.0, processing_seconds) - self._average_processing_time
        ) / self._samples

    def reset(self) -> None:
        self._completed_count = 0
        self._total_count = 0
        self._average_processing_time = 0.0
        self._samples = 0

    def stats_event(self) -> QueueStatsUpdated:
        return QueueStatsUpdated(
            completed_count=self._completed_count,
            total_count=self._total_count,
            average_processing_time=self._average_processing_time,
        )

    async def publish_task(self, task: Task) -> None:
        await self._hub.publish(
            TaskUpdated(
                task_id=task.task_id,
                status=task.status,
                progress=task.progress,
                output=task.output,
                error=task.error,
            )
        )

    async def publish_stats(self) -> None:
        await self._hub.publish(self.stats_event())
