"""依赖注入模块 -- 通过 FastAPI Depends 注入队列运行时

QueueRuntime 通过 app.state 管理，在 lifespan 中初始化/关闭。
"""

from fastapi import Request
from quillflow.engine import EventHub, TaskQueue

from .services.queue_runtime import QueueRuntime


def get_runtime(request: Request) -> QueueRuntime:
    """从 app.state 获取 QueueRuntime 实例"""
    return request.app.state.runtime


def get_queue(request: Request) -> TaskQueue:
    return request.app.state.runtime.queue


def get_event_hub(request: Request) -> EventHub:
    return request.app.state.runtime.hub
