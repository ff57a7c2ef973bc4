"""单任务命令路由

POST /api/tasks/{task_id}/cancel: 取消 WAITING / PROCESSING 任务。
- 200: 返回当前状态；changed=false 表示任务已不在活动状态，无操作
- 404: 任务不存在
POST /api/tasks/{task_id}/resubmit: ERROR / CANCELED 任务重新排队。
- 409: 当前状态不允许重新提交
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from quillflow.engine import QueueError, TaskQueue

from ..deps import get_queue
from ..errors import queue_error_response

router = APIRouter()


class CancelResponse(BaseModel):
    """取消响应"""

    task_id: str
    status: str
    changed: bool


class ResubmitResponse(BaseModel):
    task_id: str
    status: str


@router.post("/api/tasks/{task_id}/cancel")
async def cancel_task(
    task_id: str,
    queue: TaskQueue = Depends(get_queue),
):
    try:
        changed = await queue.cancel(task_id)
        task = queue.get(task_id)
    except QueueError as e:
        return queue_error_response(e)

    return CancelResponse(task_id=task_id, status=task.status.value, changed=changed)


@router.post("/api/tasks/{task_id}/resubmit")
async def resubmit_task(
    task_id: str,
    queue: TaskQueue = Depends(get_queue),
):
    try:
        await queue.resubmit(task_id)
        task = queue.get(task_id)
    except QueueError as e:
        return queue_error_response(e)

    return ResubmitResponse(task_id=task_id, status=task.status.value)
