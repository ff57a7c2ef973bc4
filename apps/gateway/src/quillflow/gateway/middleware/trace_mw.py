"""TraceMiddleware -- 任务级追踪

为任务路由绑定 trace_id=trace-{task_id}，贯穿该请求内的日志。
匹配 /api/tasks/{task_id}[/...] 与 /api/stream/task/{task_id}。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID 长度
_TASK_ID_LENGTH = 26


def extract_task_id(path: str) -> str | None:
    """从请求路径中提取 task_id，不存在时返回 None"""
    parts = path.strip("/").split("/")
    for i, part in enumerate(parts[:-1]):
        if part in ("tasks", "task"):
            candidate = parts[i + 1]
            if len(candidate) == _TASK_ID_LENGTH:
                return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id:
            structlog.contextvars.bind_contextvars(trace_id=f"trace-{task_id}")

        return await call_next(request)
