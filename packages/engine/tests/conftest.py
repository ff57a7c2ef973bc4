"""packages/engine 测试配置 -- 可编排的 Generator 与零延迟配置"""

import inspect
from collections.abc import Callable

import pytest
from quillflow.core.models import GenerationSettings, Task
from quillflow.engine.config import EngineConfig
from quillflow.provider.models import GenerationResult
from ulid import ULID


class ScriptedGenerator:
    """按 responder 返回文本或抛出异常的 Generator

    responder(prompt, context) 可返回 str、异常实例，或返回二者之一的协程。
    """

    NORMALIZATION_MARKERS = ("words over the target", "words under the target")
    ANALYSIS_MARKER = "Respond with JSON only"

    def __init__(self, responder: Callable) -> None:
        self._responder = responder
        self.calls: list[tuple[str, str | None]] = []

    async def generate(self, prompt: str, context: str | None = None) -> GenerationResult:
        self.calls.append((prompt, context))
        outcome = self._responder(prompt, context)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return GenerationResult(text=outcome)

    @classmethod
    def is_normalization(cls, prompt: str) -> bool:
        return any(marker in prompt for marker in cls.NORMALIZATION_MARKERS)

    @classmethod
    def is_analysis(cls, prompt: str) -> bool:
        return cls.ANALYSIS_MARKER in prompt

    @property
    def chunk_calls(self) -> list[tuple[str, str | None]]:
        return [
            (p, c)
            for p, c in self.calls
            if not self.is_normalization(p) and not self.is_analysis(p)
        ]

    @property
    def normalization_calls(self) -> list[tuple[str, str | None]]:
        return [(p, c) for p, c in self.calls if self.is_normalization(p)]

    @property
    def analysis_calls(self) -> list[tuple[str, str | None]]:
        return [(p, c) for p, c in self.calls if self.is_analysis(p)]


@pytest.fixture
def scripted_generator() -> Callable[[Callable], ScriptedGenerator]:
    """ScriptedGenerator 工厂"""
    return ScriptedGenerator


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """构造 PROCESSING 前的 Task（直接交给 ChunkedGenerator）"""

    def _make(
        target_size: int = 1000,
        input: object = "A lighthouse keeper finds a message in a bottle.",
        kind: str = "write-story",
        **overrides,
    ) -> Task:
        return Task(
            task_id=str(ULID()),
            kind=kind,
            input=input,
            settings=GenerationSettings(target_size=target_size, overrides=overrides),
        )

    return _make


@pytest.fixture
def engine_config() -> EngineConfig:
    """所有延迟与退避为 0 的配置"""
    return EngineConfig(
        server_backoff_base_s=0,
        queue_server_backoff_base_s=0,
        overload_backoff_base_s=0,
        inter_chunk_delay_s=0,
        first_chunk_delay_s=0,
    )
