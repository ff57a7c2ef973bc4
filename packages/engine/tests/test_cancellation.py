"""CancelToken / cancellable_sleep / run_cancellable 单元测试"""

import asyncio

import pytest
from quillflow.engine.cancellation import CancelToken, cancellable_sleep, run_cancellable
from quillflow.engine.errors import TaskCanceledError


class TestCancelToken:
    def test_cancel_is_idempotent(self):
        """重复取消只有第一次生效，原因保持不变"""
        token = CancelToken()
        assert token.cancel("first") is True
        assert token.cancel("second") is False
        assert token.is_cancelled
        assert token.reason == "first"

    def test_raise_if_cancelled(self):
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel("stop")
        with pytest.raises(TaskCanceledError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.reason == "stop"

    def test_tokens_are_independent(self):
        """取消一个令牌不影响其他令牌"""
        a, b = CancelToken(), CancelToken()
        a.cancel()
        assert not b.is_cancelled


class TestCancellableSleep:
    async def test_zero_sleep_returns(self):
        await cancellable_sleep(0, CancelToken())

    async def test_already_cancelled_raises(self):
        token = CancelToken()
        token.cancel()
        with pytest.raises(TaskCanceledError):
            await cancellable_sleep(0, token)

    async def test_cancel_interrupts_long_sleep(self):
        """取消在一个调度周期内打断长 sleep"""
        token = CancelToken()
        loop = asyncio.get_running_loop()
        loop.call_soon(token.cancel, "user")
        started = loop.time()

        with pytest.raises(TaskCanceledError):
            await cancellable_sleep(60, token)
        assert loop.time() - started < 1


class TestRunCancellable:
    async def test_returns_result(self):
        async def call():
            return 42

        assert await run_cancellable(call, CancelToken()) == 42

    async def test_propagates_call_error(self):
        async def call():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await run_cancellable(call, CancelToken())

    async def test_cancel_aborts_inflight_call(self):
        """取消令牌会取消进行中的调用"""
        token = CancelToken()
        never = asyncio.Event()
        observed = {}

        async def call():
            token.cancel("user")
            try:
                await never.wait()
            except asyncio.CancelledError:
                observed["cancelled"] = True
                raise

        with pytest.raises(TaskCanceledError):
            await run_cancellable(call, token)
        await asyncio.sleep(0)
        assert observed.get("cancelled") is True

    async def test_cancel_wins_over_late_result(self):
        """调用完成时令牌已取消，结果被丢弃"""
        token = CancelToken()

        async def call():
            token.cancel()
            return "late"

        with pytest.raises(TaskCanceledError):
            await run_cancellable(call, token)

    async def test_not_started_when_cancelled(self):
        token = CancelToken()
        token.cancel()
        calls = []

        async def call():
            calls.append(1)

        with pytest.raises(TaskCanceledError):
            await run_cancellable(call, token)
        assert calls == []
