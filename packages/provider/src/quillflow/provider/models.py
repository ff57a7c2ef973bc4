"""数据模型 -- TokenUsage + GenerationResult + QuotaDecision"""

from pydantic import BaseModel, Field


class TokenUsage(BaseModel):
    """Token 使用统计

    key 命名对齐 OpenAI/LiteLLM 行业标准：
    prompt_tokens / completion_tokens / total_tokens
    """

    prompt_tokens: int = Field(default=0, ge=0, description="输入 token 数")
    completion_tokens: int = Field(default=0, ge=0, description="输出 token 数")
    total_tokens: int = Field(default=0, ge=0, description="总 token 数")


class GenerationResult(BaseModel):
    """单次生成调用结果

    所有 Generator（LiteLLM、Echo、测试桩）统一返回此类型。
    """

    text: str = Field(description="生成文本")
    model_alias: str = Field(default="", description="请求时使用的模型别名")
    model_name: str = Field(default="", description="实际调用的模型名称")
    provider: str = Field(default="", description="实际 provider")
    duration_ms: int = Field(default=0, ge=0, description="端到端耗时（毫秒）")
    token_usage: TokenUsage = Field(default_factory=TokenUsage)


class QuotaUsage(BaseModel):
    """配额使用情况"""

    current: int = Field(default=0, ge=0)
    limit: int = Field(default=0, ge=0)
    remaining: int = Field(default=0, ge=0)


class QuotaDecision(BaseModel):
    """配额闸门判定结果"""

    allowed: bool
    reason: str | None = Field(default=None, description="拒绝原因或警告信息")
    usage: QuotaUsage = Field(default_factory=QuotaUsage)
