"""LiteLLMClient -- LiteLLM Proxy 调用封装

通过 litellm.acompletion() 调用 Proxy，实现 Generator 接口。
SDK/网络异常统一映射为 TransientOverloadError / TransientServerError / PermanentError。
"""

import time

import httpx
import structlog
from litellm import acompletion

from .classifier import to_provider_error
from .exceptions import ProviderError, ProxyUnreachableError
from .models import GenerationResult, TokenUsage

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 连接类异常类型集合（Proxy 不可达）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
)

CONTEXT_PREAMBLE = (
    "The following text has already been written. Continue from where it "
    "ends; do not restart or repeat it.\n---\n"
)


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误（Proxy 不可达）"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    error_name = type(e).__name__
    return error_name in ("APIConnectionError", "APITimeoutError", "Timeout")


def build_messages(prompt: str, context: str | None = None) -> list[dict[str, str]]:
    """构造 chat messages；上文作为 system 消息放在提示词之前"""
    messages: list[dict[str, str]] = []
    if context:
        messages.append({"role": "system", "content": CONTEXT_PREAMBLE + context})
    messages.append({"role": "user", "content": prompt})
    return messages


class LiteLLMClient:
    """LiteLLM Proxy 客户端（Generator 实现）"""

    def __init__(
        self,
        proxy_base_url: str = "http://localhost:4000",
        proxy_api_key: str = "",
        model_alias: str = "main",
        timeout_s: int = 60,
        temperature: float = 0.7,
    ) -> None:
        """初始化 LiteLLM Proxy 客户端

        Args:
            proxy_base_url: Proxy 基础 URL
            proxy_api_key: Proxy 访问密钥（LITELLM_PROXY_KEY）
            model_alias: Proxy 上配置的模型组名
            timeout_s: 请求超时（秒）
            temperature: 采样温度
        """
        self._proxy_base_url = proxy_base_url.rstrip("/")
        self._proxy_api_key = proxy_api_key
        self._model_alias = model_alias
        self._timeout_s = timeout_s
        self._temperature = temperature

    async def generate(
        self, prompt: str, context: str | None = None
    ) -> GenerationResult:
        """发送 chat completion 请求到 LiteLLM Proxy

        Args:
            prompt: 提示词
            context: 可选上文（续写时为已生成内容的尾部窗口）

        Returns:
            GenerationResult

        Raises:
            ProxyUnreachableError: Proxy 连接失败或超时
            TransientOverloadError: 上游限流/过载
            TransientServerError: 上游 5xx
            PermanentError: 其余错误（参数、鉴权、内容拦截等）
        """
        start_time = time.monotonic()
        messages = build_messages(prompt, context)

        try:
            log.debug(
                "litellm_call_start",
                model_alias=self._model_alias,
                message_count=len(messages),
            )

            response = await acompletion(
                model=self._model_alias,
                messages=messages,
                api_base=self._proxy_base_url,
                api_key=self._proxy_api_key or "no-key",
                temperature=self._temperature,
                timeout=self._timeout_s,
            )

            duration_ms = int((time.monotonic() - start_time) * 1000)
            content = response.choices[0].message.content or ""
            usage = getattr(response, "usage", None)
            token_usage = TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            )
            hidden = getattr(response, "_hidden_params", None) or {}

            result = GenerationResult(
                text=content,
                model_alias=self._model_alias,
                model_name=getattr(response, "model", "") or "",
                provider=hidden.get("custom_llm_provider", "") or "",
                duration_ms=duration_ms,
                token_usage=token_usage,
            )

            log.info(
                "litellm_call_completed",
                model_alias=self._model_alias,
                model_name=result.model_name,
                duration_ms=duration_ms,
                completion_tokens=token_usage.completion_tokens,
            )
            return result

        except ProviderError:
            raise
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log.error(
                "litellm_call_failed",
                model_alias=self._model_alias,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            if _is_connection_error(e):
                raise ProxyUnreachableError(
                    proxy_url=self._proxy_base_url,
                    original_error=e,
                ) from e
            raise to_provider_error(e) from e

    async def health_check(self) -> bool:
        """检查 LiteLLM Proxy 可达性

        发送 GET {proxy_base_url}/health/liveliness 请求。

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        url = f"{self._proxy_base_url}/health/liveliness"
        try:
            async with httpx.AsyncClient() as http_client:
                resp = await http_client.get(url, timeout=HEALTH_CHECK_TIMEOUT_S)
                return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", url=url, error=str(e))
            return False
