"""classify_error / to_provider_error 单元测试"""

import httpx
import litellm
import pytest
from quillflow.core.models import ErrorKind
from quillflow.provider.classifier import classify_error, to_provider_error
from quillflow.provider.exceptions import (
    PermanentError,
    ProxyUnreachableError,
    QuotaDeniedError,
    TransientOverloadError,
    TransientServerError,
)


def _http_status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://upstream/v1/chat")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("upstream failed", request=request, response=response)


class TestClassifyError:
    """分类顺序：异常类型 > 类名 > 状态码 > 文本"""

    def test_provider_error_kind_wins(self):
        """已分类的 ProviderError 直接返回其 kind"""
        assert classify_error(TransientOverloadError("x")) == ErrorKind.TRANSIENT_OVERLOAD
        assert classify_error(TransientServerError("x")) == ErrorKind.TRANSIENT_SERVER
        assert classify_error(PermanentError("overloaded")) == ErrorKind.PERMANENT
        assert classify_error(QuotaDeniedError("limit")) == ErrorKind.QUOTA_DENIED

    def test_proxy_unreachable_is_server(self):
        """Proxy 不可达属于服务端类"""
        err = ProxyUnreachableError("http://proxy", ConnectionError("refused"))
        assert classify_error(err) == ErrorKind.TRANSIENT_SERVER

    @pytest.mark.parametrize("status_code", [429, 503, 529])
    def test_overload_status_codes(self, status_code):
        """容量类状态码"""
        assert classify_error(_http_status_error(status_code)) == ErrorKind.TRANSIENT_OVERLOAD

    @pytest.mark.parametrize("status_code", [500, 502, 504])
    def test_server_status_codes(self, status_code):
        """其余 5xx"""
        assert classify_error(_http_status_error(status_code)) == ErrorKind.TRANSIENT_SERVER

    def test_litellm_timeout_is_server(self):
        """litellm.Timeout 携带 408，按类名归为服务端类"""
        err = litellm.Timeout(message="Request timed out", model="m", llm_provider="openai")
        assert err.status_code == 408
        assert classify_error(err) == ErrorKind.TRANSIENT_SERVER
        assert isinstance(to_provider_error(err), TransientServerError)

    def test_request_timeout_status_is_server(self):
        assert classify_error(_http_status_error(408)) == ErrorKind.TRANSIENT_SERVER

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 422])
    def test_client_status_codes_are_permanent(self, status_code):
        """4xx（429 除外）不可重试"""
        assert classify_error(_http_status_error(status_code)) == ErrorKind.PERMANENT

    def test_status_code_attribute(self):
        """SDK 异常上的 status_code 属性同样生效"""

        class SdkError(Exception):
            status_code = 503

        assert classify_error(SdkError("boom")) == ErrorKind.TRANSIENT_OVERLOAD

    def test_connection_types_are_server(self):
        """连接/超时异常属于服务端类"""
        assert classify_error(ConnectionResetError("reset")) == ErrorKind.TRANSIENT_SERVER
        assert classify_error(TimeoutError()) == ErrorKind.TRANSIENT_SERVER
        assert classify_error(httpx.ReadTimeout("slow")) == ErrorKind.TRANSIENT_SERVER

    @pytest.mark.parametrize(
        "message",
        [
            "Model is overloaded, try later",
            "Rate limit exceeded",
            "RESOURCE_EXHAUSTED: quota",
            "HTTP 429 Too Many Requests",
        ],
    )
    def test_overload_patterns(self, message):
        """容量类文本模式（大小写不敏感）"""
        assert classify_error(RuntimeError(message)) == ErrorKind.TRANSIENT_OVERLOAD

    @pytest.mark.parametrize(
        "message",
        ["Internal server error", "502 Bad Gateway", "request timed out"],
    )
    def test_server_patterns(self, message):
        """服务端类文本模式"""
        assert classify_error(RuntimeError(message)) == ErrorKind.TRANSIENT_SERVER

    @pytest.mark.parametrize(
        "message",
        [
            "invalid timeout parameter: must be positive",
            "model gpt-4o-0503 does not support tools",
            "context length exceeds model limit",
            "field 429x is not allowed",
        ],
    )
    def test_substrings_inside_words_are_permanent(self, message):
        """模式按词边界匹配，校验类消息中的数字或单词片段不触发重试"""
        assert classify_error(ValueError(message)) == ErrorKind.PERMANENT

    def test_unknown_is_permanent(self):
        """无法识别的错误视为永久失败"""
        assert classify_error(ValueError("prompt must not be empty")) == ErrorKind.PERMANENT


class TestToProviderError:
    """异常包装"""

    def test_wraps_by_kind(self):
        assert isinstance(to_provider_error(RuntimeError("overloaded")), TransientOverloadError)
        assert isinstance(to_provider_error(RuntimeError("bad gateway")), TransientServerError)
        assert isinstance(to_provider_error(ValueError("invalid")), PermanentError)

    def test_provider_error_returned_as_is(self):
        err = PermanentError("denied")
        assert to_provider_error(err) is err

    def test_empty_message_uses_type_name(self):
        wrapped = to_provider_error(ValueError())
        assert str(wrapped) == "ValueError"

    def test_recoverable_flag(self):
        assert to_provider_error(RuntimeError("overloaded")).recoverable is True
        assert to_provider_error(ValueError("invalid")).recoverable is False
