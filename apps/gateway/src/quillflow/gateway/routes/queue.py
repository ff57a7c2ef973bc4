"""队列控制路由

GET /api/queue: QueueSystemState 快照。
POST /api/queue/{action}: start / pause / resume / stop / clear / enable / disable。
"""

from typing import Literal

from fastapi import APIRouter, Depends
from quillflow.engine import QueueError, TaskQueue

from ..deps import get_queue
from ..errors import queue_error_response

router = APIRouter()

QueueAction = Literal["start", "pause", "resume", "stop", "clear", "enable", "disable"]


@router.get("/api/queue")
async def get_queue_state(queue: TaskQueue = Depends(get_queue)):
    return queue.state().model_dump(mode="json")


@router.post("/api/queue/{action}")
async def control_queue(
    action: QueueAction,
    queue: TaskQueue = Depends(get_queue),
):
    """执行队列控制命令，返回命令执行后的状态"""
    try:
        await getattr(queue, action)()
    except QueueError as e:
        return queue_error_response(e)
    return queue.state().model_dump(mode="json")
