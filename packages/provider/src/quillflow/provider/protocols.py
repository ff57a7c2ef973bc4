"""Provider Protocol 接口定义

引擎消费的两个外部能力：Generator（文本生成）与 QuotaGate（配额闸门），
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from .models import GenerationResult, QuotaDecision


class Generator(Protocol):
    """文本生成能力

    失败时抛出 TransientOverloadError / TransientServerError / PermanentError。
    """

    async def generate(
        self, prompt: str, context: str | None = None
    ) -> GenerationResult:
        """根据提示词（及可选上文）生成文本"""
        ...


class QuotaGate(Protocol):
    """配额闸门：在任务开始处理前咨询"""

    async def admit(self, action_kind: str, unit_count: int = 1) -> QuotaDecision:
        """检查并登记一次动作，返回是否放行"""
        ...
