"""Provider 异常体系

上游失败分三类：TransientOverload（容量/限流，长退避重试）、
TransientServer（通用服务端故障，短退避重试）、Permanent（校验/鉴权等，不重试）。
配额拒绝单独建模为 QuotaDeniedError，不属于上游故障。
"""

from quillflow.core.models import ErrorKind


class ProviderError(Exception):
    """Provider 包基础异常"""

    kind: ErrorKind = ErrorKind.PERMANENT

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class TransientOverloadError(ProviderError):
    """上游过载或限流（429/503 等），预期恢复较慢"""

    kind = ErrorKind.TRANSIENT_OVERLOAD

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class TransientServerError(ProviderError):
    """上游通用服务端故障（5xx、连接重置等）"""

    kind = ErrorKind.TRANSIENT_SERVER

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class PermanentError(ProviderError):
    """不可重试的确定性失败（参数校验、鉴权、内容拦截等）"""

    kind = ErrorKind.PERMANENT

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class ProxyUnreachableError(TransientServerError):
    """LiteLLM Proxy 不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, proxy_url: str, original_error: Exception) -> None:
        """
        Args:
            proxy_url: 尝试连接的 Proxy 地址
            original_error: 原始异常
        """
        super().__init__(f"LiteLLM Proxy 不可达: {proxy_url} -- {original_error}")
        self.proxy_url = proxy_url
        self.original_error = original_error


class QuotaDeniedError(ProviderError):
    """配额闸门拒绝（策略拦截），不重试，任务进入 FAILED"""

    kind = ErrorKind.QUOTA_DENIED

    def __init__(self, reason: str, action_kind: str = "") -> None:
        super().__init__(reason, recoverable=False)
        self.reason = reason
        self.action_kind = action_kind
