"""错误响应 -- 统一为 {"error": {"code", "message"}} 结构"""

from quillflow.engine import QueueError
from starlette.responses import JSONResponse

# QueueError.code -> HTTP 状态码
_STATUS_BY_CODE = {
    "TASK_NOT_FOUND": 404,
    "TASK_PROCESSING": 409,
    "INVALID_TRANSITION": 409,
    "QUEUE_DISABLED": 409,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def queue_error_response(exc: QueueError) -> JSONResponse:
    """将队列命令异常映射为 HTTP 错误响应"""
    return error_response(_STATUS_BY_CODE.get(exc.code, 400), exc.code, str(exc))
