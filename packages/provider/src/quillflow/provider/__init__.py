"""QuillFlow Provider -- 上游生成服务与配额闸门抽象层

packages/provider 的公开接口导出。
"""

# 失败分类
from .classifier import classify_error, to_provider_error

# 核心组件
from .client import LiteLLMClient

# 配置
from .config import ProviderConfig, build_generator, build_quota_gate, load_provider_config
from .echo_adapter import EchoGenerator

# 异常
from .exceptions import (
    PermanentError,
    ProviderError,
    ProxyUnreachableError,
    QuotaDeniedError,
    TransientOverloadError,
    TransientServerError,
)

# 数据模型
from .models import GenerationResult, QuotaDecision, QuotaUsage, TokenUsage
from .protocols import Generator, QuotaGate
from .quota import AllowAllQuotaGate, HttpQuotaGate, LocalDailyQuotaGate

__all__ = [
    "GenerationResult",
    "TokenUsage",
    "QuotaDecision",
    "QuotaUsage",
    "Generator",
    "QuotaGate",
    "LiteLLMClient",
    "EchoGenerator",
    "AllowAllQuotaGate",
    "LocalDailyQuotaGate",
    "HttpQuotaGate",
    "ProviderConfig",
    "load_provider_config",
    "build_generator",
    "build_quota_gate",
    "classify_error",
    "to_provider_error",
    "ProviderError",
    "TransientOverloadError",
    "TransientServerError",
    "PermanentError",
    "ProxyUnreachableError",
    "QuotaDeniedError",
]
