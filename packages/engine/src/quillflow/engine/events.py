"""EventHub -- 内存中事件广播器

每个订阅者持有一个 asyncio.Queue，支持 subscribe/unsubscribe/publish。
订阅时可指定 task_id（只收该任务的 TaskUpdated），不指定则接收全部事件。
订阅者队列已满时视为失效并移除。
"""

import asyncio
from collections import defaultdict

import structlog
from quillflow.core.config import EVENT_QUEUE_MAXSIZE
from quillflow.core.models import QueueEvent, QueueStatsUpdated, TaskUpdated

log = structlog.get_logger()

__all__ = ["EventHub", "QueueEvent", "QueueStatsUpdated", "TaskUpdated"]

# 全局订阅 key
_ALL = "*"


class EventHub:
    """事件广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = EVENT_QUEUE_MAXSIZE) -> None:
        # task_id（或 "*"）-> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    def subscribe(self, task_id: str | None = None) -> asyncio.Queue:
        """订阅事件流

        Args:
            task_id: 只订阅指定任务；None 表示订阅全部事件

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id or _ALL].add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue, task_id: str | None = None) -> None:
        """取消订阅"""
        key = task_id or _ALL
        subscribers = self._subscribers.get(key)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[key]

    def subscriber_count(self, task_id: str | None = None) -> int:
        return len(self._subscribers.get(task_id or _ALL, ()))

    async def publish(self, event: QueueEvent) -> None:
        """向相关订阅者广播事件（不阻塞）"""
        keys = [_ALL]
        if isinstance(event, TaskUpdated):
            keys.append(event.task_id)

        for key in keys:
            dead_queues = []
            for queue in self._subscribers.get(key, set()):
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_queues.append(queue)

            # 清理已满的队列
            for q in dead_queues:
                log.warning("event_subscriber_dropped", key=key)
                self.unsubscribe(q, None if key == _ALL else key)
