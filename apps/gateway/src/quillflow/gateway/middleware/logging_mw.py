"""LoggingMiddleware -- 请求级日志

为每个 HTTP 请求生成 request_id，绑定到 structlog contextvars，
并记录请求耗时。

- /health、/ready 会被编排器频繁轮询，按 debug 级别记录
- /api/stream* 是长连接，响应头返回即记录 stream_opened，不计耗时
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

_HEALTH_PATHS = frozenset({"/health", "/ready"})
_STREAM_PREFIX = "/api/stream"


def request_kind(path: str) -> str:
    """按路径区分请求类别：health / stream / api"""
    if path in _HEALTH_PATHS:
        return "health"
    if path == _STREAM_PREFIX or path.startswith(_STREAM_PREFIX + "/"):
        return "stream"
    return "api"


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件 -- 为每个请求生成 request_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        kind = request_kind(request.url.path)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        started = time.monotonic()

        response = await call_next(request)

        if kind == "stream":
            await log.ainfo("stream_opened", status_code=response.status_code)
        else:
            emit = log.adebug if kind == "health" else log.ainfo
            await emit(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )

        response.headers["X-Request-ID"] = request_id
        return response
