"""RetryExecutor -- 分类重试

TransientOverload / TransientServer 按各自的退避基数指数退避重试；
Permanent / QuotaDenied 只尝试一次。max_attempts 是总尝试次数。
所有调用与退避 sleep 都观察任务的取消令牌。
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field
from quillflow.core.models import RETRYABLE_KINDS, ErrorKind
from quillflow.provider.classifier import classify_error

from .cancellation import CancelToken, cancellable_sleep, run_cancellable
from .errors import GenerationError, TaskCanceledError

log = structlog.get_logger()

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """重试策略"""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, description="总尝试次数")
    server_backoff_base_s: float = Field(default=5.0, ge=0)
    overload_backoff_base_s: float = Field(default=60.0, ge=0)

    def backoff_for(self, kind: ErrorKind, attempt: int) -> float:
        """第 attempt 次（从 0 开始）失败后的退避秒数：base * 2**attempt"""
        base = (
            self.overload_backoff_base_s
            if kind == ErrorKind.TRANSIENT_OVERLOAD
            else self.server_backoff_base_s
        )
        return base * (2**attempt)


class RetryExecutor:
    """按错误分类执行重试"""

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self._policy = policy or RetryPolicy()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        token: CancelToken,
        max_retries: int | None = None,
    ) -> T:
        """执行 call，必要时重试

        Args:
            call: 无参协程工厂，每次尝试重新调用
            token: 任务取消令牌
            max_retries: 覆盖策略中的总尝试次数

        Raises:
            TaskCanceledError: 调用或退避期间被取消
            GenerationError: 不可重试失败，或重试耗尽
        """
        max_attempts = max_retries if max_retries is not None else self._policy.max_attempts
        max_attempts = max(1, max_attempts)
        last_error: BaseException | None = None
        last_kind = ErrorKind.PERMANENT

        for attempt in range(max_attempts):
            try:
                return await run_cancellable(call, token)
            except TaskCanceledError:
                raise
            except Exception as e:
                last_error = e
                last_kind = classify_error(e)

                if last_kind not in RETRYABLE_KINDS:
                    log.warning(
                        "generation_call_failed",
                        attempt=attempt + 1,
                        error_kind=last_kind,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise GenerationError(
                        _message_of(e), last_kind, attempts=attempt + 1
                    ) from e

                if attempt + 1 >= max_attempts:
                    break

                delay_s = self._policy.backoff_for(last_kind, attempt)
                log.warning(
                    "generation_retry_scheduled",
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    error_kind=last_kind,
                    error_type=type(e).__name__,
                    delay_s=delay_s,
                )
                await cancellable_sleep(delay_s, token)

        log.error(
            "generation_retries_exhausted",
            attempts=max_attempts,
            error_kind=last_kind,
            error=str(last_error),
        )
        raise GenerationError(
            _message_of(last_error), last_kind, attempts=max_attempts
        ) from last_error


def _message_of(error: BaseException | None) -> str:
    if error is None:
        return "unknown error"
    return str(error) or type(error).__name__
