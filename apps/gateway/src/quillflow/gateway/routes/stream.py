"""SSE 事件流路由

GET /api/stream: 推送全部 TaskUpdated 与 QueueStatsUpdated 事件。
GET /api/stream/task/{task_id}: 推送指定任务的 TaskUpdated，终态时携带 final: true 并关闭。
任务被删除后，下一次心跳时关闭。

连接建立时先推送一次当前快照，之后实时推送；空闲时按 SSE_HEARTBEAT_INTERVAL 发送心跳。
"""

import asyncio
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from quillflow.core.config import SSE_HEARTBEAT_INTERVAL
from quillflow.core.models import TERMINAL_STATES, QueueEvent, Task, TaskUpdated
from quillflow.engine import EventHub, QueueError, TaskQueue
from sse_starlette.sse import EventSourceResponse

from ..deps import get_event_hub, get_queue
from ..errors import queue_error_response

router = APIRouter()


def _is_final(event: QueueEvent) -> bool:
    return isinstance(event, TaskUpdated) and event.status in TERMINAL_STATES


def _to_sse(event: QueueEvent, is_final: bool = False) -> dict:
    """将事件模型转换为 SSE 消息"""
    data = event.model_dump(mode="json")
    data["final"] = is_final
    return {
        "event": event.type.value,
        "data": json.dumps(data, ensure_ascii=False),
    }


def _snapshot(task: Task) -> TaskUpdated:
    return TaskUpdated(
        task_id=task.task_id,
        status=task.status,
        progress=task.progress,
        output=task.output,
        error=task.error,
    )


async def queue_event_stream(
    queue: TaskQueue,
    hub: EventHub,
    heartbeat_s: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncIterator[dict]:
    """全部事件流：先推送统计快照，再实时推送"""
    subscriber = hub.subscribe()
    try:
        yield _to_sse(queue.reporter.stats_event())
        while True:
            try:
                event = await asyncio.wait_for(subscriber.get(), timeout=heartbeat_s)
            except TimeoutError:
                # 心跳保活
                yield {"comment": "heartbeat"}
                continue
            yield _to_sse(event)
    finally:
        hub.unsubscribe(subscriber)


async def task_event_stream(
    queue: TaskQueue,
    hub: EventHub,
    task_id: str,
    heartbeat_s: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncIterator[dict]:
    """单任务事件流：先推送任务快照，终态事件后结束"""
    # 先订阅再取快照，避免漏掉两者之间的事件
    subscriber = hub.subscribe(task_id)
    try:
        try:
            snapshot = _snapshot(queue.get(task_id))
        except QueueError:
            return
        is_final = _is_final(snapshot)
        yield _to_sse(snapshot, is_final=is_final)
        if is_final:
            return

        while True:
            try:
                event = await asyncio.wait_for(subscriber.get(), timeout=heartbeat_s)
            except TimeoutError:
                if not queue.contains(task_id):
                    # 任务已被删除或清空
                    return
                yield {"comment": "heartbeat"}
                continue
            is_final = _is_final(event)
            yield _to_sse(event, is_final=is_final)
            if is_final:
                return
    finally:
        hub.unsubscribe(subscriber, task_id)


@router.get("/api/stream")
async def stream_queue_events(
    queue: TaskQueue = Depends(get_queue),
    hub: EventHub = Depends(get_event_hub),
):
    return EventSourceResponse(queue_event_stream(queue, hub))


@router.get("/api/stream/task/{task_id}")
async def stream_task_events(
    task_id: str,
    queue: TaskQueue = Depends(get_queue),
    hub: EventHub = Depends(get_event_hub),
):
    """SSE 事件流端点；任务不存在时返回 404"""
    try:
        queue.get(task_id)
    except QueueError as e:
        return queue_error_response(e)

    return EventSourceResponse(task_event_stream(queue, hub, task_id))
