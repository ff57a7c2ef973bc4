"""确定性的上游失败分类，供重试策略使用"""

from __future__ import annotations

import re

import httpx
from quillflow.core.models import ErrorKind

from .exceptions import (
    PermanentError,
    ProviderError,
    TransientOverloadError,
    TransientServerError,
)

_OVERLOAD_STATUS_CODES: frozenset[int] = frozenset({429, 503, 529})
# 请求超时（litellm.Timeout 携带 408）
_SERVER_STATUS_CODES: frozenset[int] = frozenset({408})

# 按词边界匹配，避免 "0503"、"invalid timeout parameter" 之类的误判
_OVERLOAD_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\boverloaded\b",
        r"\brate[ _-]?limit(ed)?\b",
        r"\btoo many requests\b",
        r"\bresource[ _]exhausted\b",
        r"\b(over|at|out of) capacity\b",
        r"\b(http|status|code|error)[ :]*(429|503)\b",
        r"^(429|503)\b",
    )
)
_SERVER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\binternal (server )?error\b",
        r"\bbad gateway\b",
        r"\bgateway time-?out\b",
        r"\btemporarily unavailable\b",
        r"\btemporary failure\b",
        r"\bconnection (reset|aborted)\b",
        r"\bnetwork error\b",
        r"\btimed out\b",
        r"\brequest time-?out\b",
    )
)
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    TimeoutError,
    httpx.TransportError,
)
# LiteLLM / OpenAI SDK 的异常类名
_OVERLOAD_ERROR_NAMES: frozenset[str] = frozenset(
    {"RateLimitError", "ServiceUnavailableError"}
)
_SERVER_ERROR_NAMES: frozenset[str] = frozenset(
    {"APIConnectionError", "APITimeoutError", "Timeout", "InternalServerError"}
)


def classify_error(error: BaseException) -> ErrorKind:
    """将任意异常归类为 ErrorKind

    顺序：显式异常类型 > 异常类名 > HTTP 状态码 > 错误文本模式，
    均不匹配时视为 PERMANENT。
    """
    if isinstance(error, ProviderError):
        return error.kind

    error_name = type(error).__name__
    if error_name in _OVERLOAD_ERROR_NAMES:
        return ErrorKind.TRANSIENT_OVERLOAD
    if error_name in _SERVER_ERROR_NAMES or isinstance(error, _CONNECTION_ERROR_TYPES):
        return ErrorKind.TRANSIENT_SERVER

    status_code = _status_code(error)
    if status_code is not None:
        if status_code in _OVERLOAD_STATUS_CODES:
            return ErrorKind.TRANSIENT_OVERLOAD
        if status_code >= 500 or status_code in _SERVER_STATUS_CODES:
            return ErrorKind.TRANSIENT_SERVER
        return ErrorKind.PERMANENT

    haystack = str(error).lower()
    if _first_match(haystack, _OVERLOAD_PATTERNS) is not None:
        return ErrorKind.TRANSIENT_OVERLOAD
    if _first_match(haystack, _SERVER_PATTERNS) is not None:
        return ErrorKind.TRANSIENT_SERVER
    return ErrorKind.PERMANENT

def to_provider_error(error: BaseException) -> ProviderError:
    """将 SDK/网络异常包装为 ProviderError 子类，已包装的原样返回"""
    if isinstance(error, ProviderError):
        return error

    kind = classify_error(error)
    message = str(error) or type(error).__name__
    if kind == ErrorKind.TRANSIENT_OVERLOAD:
        return TransientOverloadError(message)
    if kind == ErrorKind.TRANSIENT_SERVER:
        return TransientServerError(message)
    return PermanentError(message)


def _status_code(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    value = getattr(error, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def _first_match(haystack: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        match = pattern.search(haystack)
        if match:
            return match.group(0)
    return None
