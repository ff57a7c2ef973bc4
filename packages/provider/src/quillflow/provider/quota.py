"""QuotaGate 实现 -- 任务开始处理前的配额闸门

三种实现：
- AllowAllQuotaGate: 始终放行（本地开发 / 测试）
- LocalDailyQuotaGate: 进程内按 UTC 自然日计数
- HttpQuotaGate: 调用远端 check-and-track 接口，网络故障时放行（fail open）
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime

import httpx
import structlog

from .models import QuotaDecision, QuotaUsage

log = structlog.get_logger()

DEFAULT_DAILY_LIMIT = 300
OFFLINE_REASON = "配额服务不可达，已离线放行"


def _utc_today() -> date:
    return datetime.now(UTC).date()


class AllowAllQuotaGate:
    """不做任何限制"""

    async def admit(self, action_kind: str, unit_count: int = 1) -> QuotaDecision:
        return QuotaDecision(allowed=True)


class LocalDailyQuotaGate:
    """进程内每日配额

    所有动作共享同一计数；跨 UTC 日期时计数归零。
    拒绝不消耗配额。
    """

    def __init__(
        self,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._daily_limit = daily_limit
        self._today = today
        self._day = today()
        self._used = 0
        self._lock = asyncio.Lock()

    @property
    def used(self) -> int:
        return self._used

    async def admit(self, action_kind: str, unit_count: int = 1) -> QuotaDecision:
        async with self._lock:
            today = self._today()
            if today != self._day:
                self._day = today
                self._used = 0

            if self._used + unit_count > self._daily_limit:
                usage = self._usage()
                log.warning(
                    "quota_denied",
                    action_kind=action_kind,
                    unit_count=unit_count,
                    current=usage.current,
                    limit=usage.limit,
                )
                return QuotaDecision(
                    allowed=False,
                    reason=(
                        f"今日配额已用完（{usage.current}/{usage.limit}），"
                        "请于 UTC 零点后重试"
                    ),
                    usage=usage,
                )

            self._used += unit_count
            return QuotaDecision(allowed=True, usage=self._usage())

    def _usage(self) -> QuotaUsage:
        return QuotaUsage(
            current=self._used,
            limit=self._daily_limit,
            remaining=max(0, self._daily_limit - self._used),
        )


class HttpQuotaGate:
    """远端配额服务

    POST {url} body={"action": ..., "count": ...}
    响应 {"blocked": bool, "message": str, "usage": {"current","limit","remaining"}}。
    HTTP 429 或 blocked=true 视为拒绝；连接失败、超时、5xx、响应格式错误均离线放行。
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout_s = timeout_s
        self._transport = transport

    async def admit(self, action_kind: str, unit_count: int = 1) -> QuotaDecision:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._url,
                    json={"action": action_kind, "count": unit_count},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            log.warning(
                "quota_check_offline",
                url=self._url,
                action_kind=action_kind,
                error=str(e),
                error_type=type(e).__name__,
            )
            return QuotaDecision(allowed=True, reason=OFFLINE_REASON)

        body = self._parse_body(resp)
        usage = self._parse_usage(body)

        if resp.status_code == 429 or body.get("blocked") is True:
            reason = body.get("message") or "配额已达上限"
            log.warning(
                "quota_denied",
                action_kind=action_kind,
                status_code=resp.status_code,
                reason=reason,
            )
            return QuotaDecision(allowed=False, reason=reason, usage=usage)

        if resp.status_code >= 400:
            log.warning(
                "quota_check_offline",
                url=self._url,
                action_kind=action_kind,
                status_code=resp.status_code,
            )
            return QuotaDecision(allowed=True, reason=OFFLINE_REASON, usage=usage)

        return QuotaDecision(allowed=True, usage=usage)

    @staticmethod
    def _parse_body(resp: httpx.Response) -> dict:
        try:
            body = resp.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _parse_usage(body: dict) -> QuotaUsage:
        raw = body.get("usage")
        if not isinstance(raw, dict):
            return QuotaUsage()
        try:
            return QuotaUsage.model_validate(raw)
        except ValueError:
            return QuotaUsage()
