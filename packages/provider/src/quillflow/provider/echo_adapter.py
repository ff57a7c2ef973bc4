"""EchoGenerator -- 离线 Echo 模式的 Generator 实现

不访问任何上游，按固定词数回声提示词内容，输出确定。
用于 QUILLFLOW_LLM_MODE=echo 的本地运行与测试。
"""

import asyncio
import time
from collections import deque
from itertools import cycle, islice

from .models import GenerationResult, TokenUsage

# 最近调用记录的保留条数
RECENT_CALLS_MAXLEN = 32


class EchoGenerator:
    """每次调用返回 words_per_call 个词的回声文本"""

    def __init__(
        self,
        words_per_call: int = 1000,
        latency_s: float = 0.01,
        recent_calls: int = RECENT_CALLS_MAXLEN,
    ) -> None:
        self._words_per_call = words_per_call
        self._latency_s = latency_s
        # 仅保留最近的 (prompt, context)，长时间运行时不随调用次数增长
        self.calls: deque[tuple[str, str | None]] = deque(maxlen=recent_calls)

    async def generate(
        self, prompt: str, context: str | None = None
    ) -> GenerationResult:
        """回声生成

        行为:
            1. 取提示词最后一个非空行的词作为素材（无内容时用 "echo"）
            2. 循环素材直到凑满 words_per_call 个词
            3. token 数按词数简单估算
        """
        start_time = time.monotonic()
        self.calls.append((prompt, context))

        # 模拟少量延迟
        await asyncio.sleep(self._latency_s)

        seed = self._extract_seed_words(prompt)
        text = " ".join(islice(cycle(seed), self._words_per_call))

        prompt_tokens = len(prompt.split()) + len((context or "").split())
        completion_tokens = self._words_per_call
        duration_ms = int((time.monotonic() - start_time) * 1000)

        return GenerationResult(
            text=text,
            model_alias="echo",
            model_name="echo",
            provider="echo",
            duration_ms=duration_ms,
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    @staticmethod
    def _extract_seed_words(prompt: str) -> list[str]:
        for line in reversed(prompt.splitlines()):
            words = line.split()
            if words:
                return words
        return ["echo"]
