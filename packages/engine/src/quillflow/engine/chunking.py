"""ChunkedGenerator -- 分块生成流程

1. 按 ChunkPlan 顺序生成各块（同一任务的块严格串行）
2. 后续块携带已生成内容的尾部窗口作为上文
3. 长度超出 target ± tolerance 时做一次归一化调用，结果无论长短均接受
4. 可选质量分析，失败降级为无报告
"""

from collections.abc import Awaitable, Callable
from functools import partial

import structlog
from pydantic import BaseModel, Field
from quillflow.core.config import (
    CONTEXT_TRUNCATION_MARK,
    PROGRESS_ANALYSIS_MARK,
    PROGRESS_BASE_FRACTION,
)
from quillflow.core.models import QualityReport, Task
from quillflow.provider.protocols import Generator

from .cancellation import CancelToken, cancellable_sleep
from .config import EngineConfig
from .errors import TaskCanceledError
from .quality import parse_quality_report
from .retry import RetryExecutor
from .strategies import ChunkPlan, PromptStrategy, StrategyRegistry, default_registry

log = structlog.get_logger()

ProgressCallback = Callable[[int], Awaitable[None]]

CHUNK_SEPARATOR = "\n\n"


class GenerationOutcome(BaseModel):
    """单个任务的生成结果"""

    text: str
    quality_report: QualityReport | None = None
    chunk_count: int = Field(ge=1)
    corrected: bool = Field(default=False, description="是否执行了长度归一化")
    units: int = Field(default=0, ge=0, description="最终词数")


def count_units(text: str) -> int:
    """生成单位：空白分隔的词"""
    return len(text.split())


def context_window(text: str, window_chars: int) -> str:
    """取已生成内容的尾部窗口；截断时加前缀标记"""
    if len(text) <= window_chars:
        return text
    return CONTEXT_TRUNCATION_MARK + text[len(text) - window_chars :]


def chunk_progress(index: int, num_chunks: int, base_fraction: int = PROGRESS_BASE_FRACTION) -> int:
    """第 index 块完成后的进度"""
    return round((index + 1) / num_chunks * base_fraction)


class ChunkedGenerator:
    """将一个任务拆分为多次依赖上文的生成调用"""

    def __init__(
        self,
        generator: Generator,
        executor: RetryExecutor | None = None,
        config: EngineConfig | None = None,
        strategies: StrategyRegistry | None = None,
    ) -> None:
        self._generator = generator
        self._config = config or EngineConfig()
        self._executor = executor or RetryExecutor(self._config.retry_policy(queue_mode=False))
        self._strategies = strategies or default_registry()

    async def run(
        self,
        task: Task,
        token: CancelToken,
        on_progress: ProgressCallback | None = None,
    ) -> GenerationOutcome:
        """执行完整生成流程

        Raises:
            TaskCanceledError: 任一挂起点观察到取消
            GenerationError: 分块或归一化调用失败
        """
        strategy = self._strategies.get(task.kind)
        overrides = task.settings.overrides
        chunk_size = int(overrides.get("chunk_size", self._config.chunk_size))
        analysis_enabled = bool(
            overrides.get("quality_analysis", self._config.quality_analysis_enabled)
        )
        plan = strategy.plan(task, chunk_size)

        log.info(
            "generation_started",
            task_id=task.task_id,
            kind=task.kind,
            target_size=plan.target_size,
            num_chunks=plan.num_chunks,
        )

        text = await self._generate_chunks(task, strategy, plan, token, on_progress)
        text, corrected = await self._normalize(task, strategy, plan, text, token)

        quality_report = None
        if analysis_enabled:
            await _report(on_progress, PROGRESS_ANALYSIS_MARK)
            quality_report = await self._analyze(task, strategy, text, token)

        units = count_units(text)
        log.info(
            "generation_finished",
            task_id=task.task_id,
            units=units,
            corrected=corrected,
            has_quality_report=quality_report is not None,
        )
        return GenerationOutcome(
            text=text,
            quality_report=quality_report,
            chunk_count=plan.num_chunks,
            corrected=corrected,
            units=units,
        )

    async def _generate_chunks(
        self,
        task: Task,
        strategy: PromptStrategy,
        plan: ChunkPlan,
        token: CancelToken,
        on_progress: ProgressCallback | None,
    ) -> str:
        parts: list[str] = []
        for index in range(plan.num_chunks):
            delay_s = (
                self._config.first_chunk_delay_s if index == 0 else self._config.inter_chunk_delay_s
            )
            await cancellable_sleep(delay_s, token)

            prompt = strategy.chunk_prompt(task, plan, index)
            context = (
                None
                if index == 0
                else context_window(CHUNK_SEPARATOR.join(parts), self._config.context_window_chars)
            )
            result = await self._executor.execute(
                partial(self._generator.generate, prompt, context), token
            )
            parts.append(result.text.strip())

            log.debug(
                "chunk_generated",
                task_id=task.task_id,
                chunk_index=index,
                num_chunks=plan.num_chunks,
                units=count_units(result.text),
            )
            await _report(on_progress, chunk_progress(index, plan.num_chunks))

        return CHUNK_SEPARATOR.join(parts)

    async def _normalize(
        self,
        task: Task,
        strategy: PromptStrategy,
        plan: ChunkPlan,
        text: str,
        token: CancelToken,
    ) -> tuple[str, bool]:
        """单次长度归一化；不追求收敛"""
        measured = count_units(text)
        target = plan.target_size
        tolerance = self._config.length_tolerance
        low = target * (1 - tolerance)
        high = target * (1 + tolerance)
        if low <= measured <= high:
            return text, False

        log.info(
            "length_normalization",
            task_id=task.task_id,
            measured=measured,
            target=target,
        )
        prompt = strategy.normalization_prompt(task, text, measured, target)
        await cancellable_sleep(self._config.inter_chunk_delay_s, token)
        result = await self._executor.execute(partial(self._generator.generate, prompt), token)

        revised = result.text.strip()
        if not revised:
            log.warning("length_normalization_empty", task_id=task.task_id)
            return text, True
        return revised, True

    async def _analyze(
        self,
        task: Task,
        strategy: PromptStrategy,
        text: str,
        token: CancelToken,
    ) -> QualityReport | None:
        """质量分析只尝试一次，任何失败都降级为 None（取消除外）"""
        prompt = strategy.analysis_prompt(task, text)
        try:
            await cancellable_sleep(self._config.inter_chunk_delay_s, token)
            result = await self._executor.execute(
                partial(self._generator.generate, prompt), token, max_retries=1
            )
        except TaskCanceledError:
            raise
        except Exception as e:
            log.warning(
                "quality_analysis_failed",
                task_id=task.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None
        return parse_quality_report(result.text)


async def _report(on_progress: ProgressCallback | None, progress: int) -> None:
    if on_progress is not None:
        await on_progress(progress)
