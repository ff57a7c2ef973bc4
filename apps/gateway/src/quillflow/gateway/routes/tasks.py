"""任务路由

POST /api/tasks: 提交单个任务或批量提交（{"tasks": [...]}）。
GET /api/tasks: 任务列表，按入队顺序，支持 status 筛选。
GET /api/tasks/{task_id}: 任务详情（含输出、错误与质量报告）。
DELETE /api/tasks/{task_id}: 删除非 PROCESSING 的任务。
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from quillflow.core.models import GenerationSettings, TaskStatus, TaskSubmission
from quillflow.engine import QueueError, TaskQueue
from starlette.responses import JSONResponse

from ..deps import get_queue
from ..errors import queue_error_response

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """单个任务提交"""

    input: Any = Field(description="任务输入（大纲、原文等）")
    settings: GenerationSettings
    title: str = ""
    kind: str = "write-story"


class BatchCreateRequest(BaseModel):
    """批量提交"""

    tasks: list[TaskCreateRequest] = Field(min_length=1)


class TaskCreateResponse(BaseModel):
    task_ids: list[str]


class TaskListResponse(BaseModel):
    tasks: list[dict[str, Any]]


def _submission(req: TaskCreateRequest) -> TaskSubmission:
    return TaskSubmission(
        input=req.input,
        settings=req.settings,
        title=req.title,
        kind=req.kind,
    )


@router.post("/api/tasks", status_code=201, response_model=TaskCreateResponse)
async def create_tasks(
    req: TaskCreateRequest | BatchCreateRequest,
    queue: TaskQueue = Depends(get_queue),
):
    """提交任务，新任务以 WAITING 状态追加到队尾"""
    items = req.tasks if isinstance(req, BatchCreateRequest) else [req]
    task_ids = await queue.enqueue_many([_submission(item) for item in items])
    return TaskCreateResponse(task_ids=task_ids)


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    queue: TaskQueue = Depends(get_queue),
):
    tasks = queue.list_tasks(status)
    return TaskListResponse(tasks=[t.model_dump(mode="json") for t in tasks])


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    queue: TaskQueue = Depends(get_queue),
):
    try:
        task = queue.get(task_id)
    except QueueError as e:
        return queue_error_response(e)
    return {"task": task.model_dump(mode="json")}


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    queue: TaskQueue = Depends(get_queue),
):
    """删除任务；PROCESSING 中的任务需先取消（409）"""
    try:
        await queue.remove(task_id)
    except QueueError as e:
        return queue_error_response(e)
    return JSONResponse(status_code=200, content={"task_id": task_id, "deleted": True})
