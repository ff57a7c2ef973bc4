"""按任务划分的取消令牌

每个被认领的任务持有独立的 CancelToken；队列级 stop() 逐个取消令牌，
不存在跨任务共享的中止标志。所有挂起点（退避 sleep、节流延迟、上游调用、
配额检查）通过本模块观察取消。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .errors import TaskCanceledError

T = TypeVar("T")


class CancelToken:
    """单个任务的取消信号"""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "canceled") -> bool:
        """发出取消信号；重复取消无副作用

        Returns:
            True 表示本次调用触发了取消
        """
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TaskCanceledError(self.reason or "canceled")


async def cancellable_sleep(seconds: float, token: CancelToken) -> None:
    """可被取消的 sleep，取消时抛出 TaskCanceledError"""
    token.raise_if_cancelled()
    if seconds <= 0:
        return
    try:
        await asyncio.wait_for(token.wait(), timeout=seconds)
    except TimeoutError:
        return
    token.raise_if_cancelled()


async def run_cancellable(call: Callable[[], Awaitable[T]], token: CancelToken) -> T:
    """执行一次调用，与取消令牌竞争

    令牌先触发时取消进行中的调用并抛出 TaskCanceledError；
    两者同时完成时取消优先，迟到的结果被丢弃。
    """
    token.raise_if_cancelled()

    call_task = asyncio.ensure_future(call())
    cancel_task = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call_task.cancel()
        cancel_task.cancel()
        raise

    if token.is_cancelled:
        if call_task.done():
            if not call_task.cancelled():
                # 取回异常，避免 "exception was never retrieved"
                call_task.exception()
        else:
            call_task.cancel()
        raise TaskCanceledError(token.reason or "canceled")

    cancel_task.cancel()
    return call_task.result()
