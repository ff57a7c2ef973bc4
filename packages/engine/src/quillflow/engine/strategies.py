"""PromptStrategy -- 按任务类型注入的提示词构造

ChunkedGenerator 只负责分块、续写上文、长度归一化与质量分析的流程；
每种任务类型的提示词由对应策略提供。未知类型回退到故事策略。
"""

import math
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field
from quillflow.core.models import Task


class ChunkPlan(BaseModel):
    """分块计划：num_chunks = max(1, ceil(target_size / chunk_size))"""

    model_config = ConfigDict(frozen=True)

    target_size: int = Field(ge=1)
    chunk_size: int = Field(ge=1)
    num_chunks: int = Field(ge=1)

    @classmethod
    def for_target(cls, target_size: int, chunk_size: int) -> "ChunkPlan":
        return cls(
            target_size=target_size,
            chunk_size=chunk_size,
            num_chunks=max(1, math.ceil(target_size / chunk_size)),
        )

    def chunk_target(self, index: int) -> int:
        """第 index 个 chunk 的目标词数（最后一块取余量）"""
        if index < self.num_chunks - 1:
            return self.chunk_size
        remainder = self.target_size - self.chunk_size * (self.num_chunks - 1)
        return max(1, remainder)


class PromptStrategy(Protocol):
    """按任务类型构造提示词"""

    def plan(self, task: Task, chunk_size: int) -> ChunkPlan: ...

    def chunk_prompt(self, task: Task, plan: ChunkPlan, index: int) -> str: ...

    def normalization_prompt(
        self, task: Task, text: str, measured: int, target: int
    ) -> str: ...

    def analysis_prompt(self, task: Task, text: str) -> str: ...


def input_text(payload: Any) -> str:
    """从任务输入中取出文本

    字符串原样返回；dict 依次查找 outline / text / source 键；其余转为字符串。
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        for key in ("outline", "text", "source"):
            value = payload.get(key)
            if isinstance(value, str):
                return value
    return "" if payload is None else str(payload)


def _style_line(task: Task) -> str:
    settings = task.settings
    parts = [f"Write in {settings.language}."]
    if settings.style:
        parts.append(f"Style: {settings.style}.")
    return " ".join(parts)


def _normalization_instruction(measured: int, target: int) -> str:
    delta = measured - target
    if delta > 0:
        return (
            f"The text below is {measured} words, {delta} words over the target of "
            f"{target}. Shorten it to about {target} words: trim peripheral detail "
            "and merge minor scenes, keeping the main events and the ending intact."
        )
    return (
        f"The text below is {measured} words, {-delta} words under the target of "
        f"{target}. Expand it to about {target} words: add sensory detail, dialogue "
        "and inner reactions, without adding new plot events."
    )


_ANALYSIS_FORMAT = (
    "Respond with JSON only, in this shape: "
    '{"consistency": <0-100>, "completeness": <0-100>, "overall": <0-100>, '
    '"notes": {"consistency": "<one sentence>", "completeness": "<one sentence>", '
    '"overall": "<one sentence>"}}'
)


class StoryPromptStrategy:
    """长篇故事：按大纲分块写作，后续块续写上文"""

    kind = "write-story"

    def plan(self, task: Task, chunk_size: int) -> ChunkPlan:
        return ChunkPlan.for_target(task.settings.target_size, chunk_size)

    def chunk_prompt(self, task: Task, plan: ChunkPlan, index: int) -> str:
        outline = input_text(task.input)
        words = plan.chunk_target(index)
        header = f"Story outline:\n{outline}\n\n{_style_line(task)}\n"
        if index == 0:
            return (
                f"{header}\nWrite the opening part of the story, about {words} words. "
                f"This is part 1 of {plan.num_chunks}."
            )
        closing = (
            " Bring the story to a satisfying ending."
            if index == plan.num_chunks - 1
            else ""
        )
        return (
            f"{header}\nContinue the story exactly where the previous text ends, "
            f"about {words} more words. This is part {index + 1} of "
            f"{plan.num_chunks}.{closing}"
        )

    def normalization_prompt(
        self, task: Task, text: str, measured: int, target: int
    ) -> str:
        return (
            f"{_normalization_instruction(measured, target)} {_style_line(task)} "
            f"Return only the revised story.\n\n{text}"
        )

    def analysis_prompt(self, task: Task, text: str) -> str:
        outline = input_text(task.input)
        return (
            "Evaluate the story below against its outline. Score consistency "
            "(characters, setting and tone stay coherent), completeness (the outline "
            "is fully covered) and overall quality. "
            f"{_ANALYSIS_FORMAT}\n\nOutline:\n{outline}\n\nStory:\n{text}"
        )


class RewritePromptStrategy:
    """改写：将原文按 chunk_size 切块，逐块改写"""

    kind = "rewrite"

    def plan(self, task: Task, chunk_size: int) -> ChunkPlan:
        # 块数由原文长度决定，长度归一化仍以 target_size 为准
        source_words = len(input_text(task.input).split())
        return ChunkPlan(
            target_size=task.settings.target_size,
            chunk_size=chunk_size,
            num_chunks=max(1, math.ceil(source_words / chunk_size)),
        )

    def source_segment(self, task: Task, plan: ChunkPlan, index: int) -> str:
        words = input_text(task.input).split()
        start = index * plan.chunk_size
        return " ".join(words[start : start + plan.chunk_size])

    def chunk_prompt(self, task: Task, plan: ChunkPlan, index: int) -> str:
        segment = self.source_segment(task, plan, index)
        position = (
            "This is the first segment."
            if index == 0
            else "Keep continuity with the previously rewritten text."
        )
        return (
            f"Rewrite the following text in your own words, keeping its meaning. "
            f"{_style_line(task)} {position} Segment {index + 1} of "
            f"{plan.num_chunks}. Return only the rewritten text.\n\n{segment}"
        )

    def normalization_prompt(
        self, task: Task, text: str, measured: int, target: int
    ) -> str:
        return (
            f"{_normalization_instruction(measured, target)} {_style_line(task)} "
            f"Return only the revised text.\n\n{text}"
        )

    def analysis_prompt(self, task: Task, text: str) -> str:
        source = input_text(task.input)
        return (
            "Compare the rewritten text with the original. Score consistency "
            "(meaning is preserved), completeness (no part of the original is "
            "missing) and overall quality. "
            f"{_ANALYSIS_FORMAT}\n\nOriginal:\n{source}\n\nRewritten:\n{text}"
        )


class StrategyRegistry:
    """任务类型 -> PromptStrategy"""

    def __init__(self, default: PromptStrategy | None = None) -> None:
        self._default: PromptStrategy = default or StoryPromptStrategy()
        self._strategies: dict[str, PromptStrategy] = {}

    def register(self, kind: str, strategy: PromptStrategy) -> None:
        self._strategies[kind] = strategy

    def get(self, kind: str) -> PromptStrategy:
        return self._strategies.get(kind, self._default)

    def kinds(self) -> list[str]:
        return sorted(self._strategies)


def default_registry() -> StrategyRegistry:
    registry = StrategyRegistry()
    registry.register(StoryPromptStrategy.kind, StoryPromptStrategy())
    registry.register(RewritePromptStrategy.kind, RewritePromptStrategy())
    return registry
