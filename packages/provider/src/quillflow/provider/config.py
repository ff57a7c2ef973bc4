"""ProviderConfig -- Provider 配置加载

从环境变量加载配置，不硬编码 provider/模型名。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

from .client import LiteLLMClient
from .echo_adapter import EchoGenerator
from .protocols import Generator, QuotaGate
from .quota import DEFAULT_DAILY_LIMIT, AllowAllQuotaGate, HttpQuotaGate, LocalDailyQuotaGate

log = structlog.get_logger()


class ProviderConfig(BaseModel):
    """Provider 包配置 -- 从环境变量加载

    环境变量:
        LITELLM_PROXY_URL: Proxy 地址（默认 http://localhost:4000）
        LITELLM_PROXY_KEY: Proxy 访问密钥
        QUILLFLOW_LLM_MODE: LLM 运行模式（litellm/echo）
        QUILLFLOW_LLM_TIMEOUT_S: 调用超时（秒，默认 60）
        QUILLFLOW_MODEL_ALIAS: Proxy 上的模型组名（默认 main）
        QUILLFLOW_QUOTA_MODE: 配额闸门（none/local/http）
        QUILLFLOW_QUOTA_URL: http 模式下的配额接口
        QUILLFLOW_QUOTA_TOKEN: http 模式下的 Bearer token
        QUILLFLOW_QUOTA_DAILY_LIMIT: local 模式每日上限（默认 300）
    """

    proxy_base_url: str = Field(
        default="http://localhost:4000",
        description="LiteLLM Proxy 基础 URL",
    )
    proxy_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Proxy 访问密钥（不是 LLM provider API key）",
    )
    llm_mode: Literal["litellm", "echo"] = Field(
        default="litellm",
        description="LLM 运行模式：litellm / echo",
    )
    timeout_s: int = Field(
        default=60,
        ge=1,
        description="LLM 调用超时（秒）",
    )
    model_alias: str = Field(default="main", description="Proxy 模型组名")
    quota_mode: Literal["none", "local", "http"] = Field(
        default="none",
        description="配额闸门模式",
    )
    quota_url: str = Field(default="", description="远端配额接口 URL")
    quota_token: SecretStr = Field(default=SecretStr(""), description="配额接口 token")
    quota_daily_limit: int = Field(
        default=DEFAULT_DAILY_LIMIT,
        ge=0,
        description="本地每日配额上限",
    )


def _int_env(name: str, fallback: int) -> int | None:
    val = os.environ.get(name)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        log.warning("invalid_int_config", env_var=name, value=val, fallback=fallback)
        # 使用默认值，不阻塞启动
        return None


def load_provider_config() -> ProviderConfig:
    """从环境变量加载 Provider 配置

    Returns:
        ProviderConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("LITELLM_PROXY_URL"):
        kwargs["proxy_base_url"] = val

    if val := os.environ.get("LITELLM_PROXY_KEY"):
        kwargs["proxy_api_key"] = SecretStr(val)

    if val := os.environ.get("QUILLFLOW_LLM_MODE"):
        kwargs["llm_mode"] = val

    if (timeout := _int_env("QUILLFLOW_LLM_TIMEOUT_S", 60)) is not None:
        kwargs["timeout_s"] = timeout

    if val := os.environ.get("QUILLFLOW_MODEL_ALIAS"):
        kwargs["model_alias"] = val

    if val := os.environ.get("QUILLFLOW_QUOTA_MODE"):
        kwargs["quota_mode"] = val

    if val := os.environ.get("QUILLFLOW_QUOTA_URL"):
        kwargs["quota_url"] = val

    if val := os.environ.get("QUILLFLOW_QUOTA_TOKEN"):
        kwargs["quota_token"] = SecretStr(val)

    limit = _int_env("QUILLFLOW_QUOTA_DAILY_LIMIT", DEFAULT_DAILY_LIMIT)
    if limit is not None:
        kwargs["quota_daily_limit"] = limit

    return ProviderConfig(**kwargs)


def build_generator(config: ProviderConfig) -> Generator:
    """按运行模式构造 Generator"""
    if config.llm_mode == "echo":
        return EchoGenerator()
    return LiteLLMClient(
        proxy_base_url=config.proxy_base_url,
        proxy_api_key=config.proxy_api_key.get_secret_value(),
        model_alias=config.model_alias,
        timeout_s=config.timeout_s,
    )


def build_quota_gate(config: ProviderConfig) -> QuotaGate:
    """按配额模式构造 QuotaGate；http 模式缺少 URL 时退化为放行"""
    if config.quota_mode == "local":
        return LocalDailyQuotaGate(daily_limit=config.quota_daily_limit)
    if config.quota_mode == "http":
        if not config.quota_url:
            log.warning("quota_url_missing", fallback="none")
            return AllowAllQuotaGate()
        return HttpQuotaGate(
            url=config.quota_url,
            token=config.quota_token.get_secret_value(),
        )
    return AllowAllQuotaGate()
