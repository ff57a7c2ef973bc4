"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 worker 池与队列状态。
         profile=llm/full 时额外探测 LiteLLM Proxy。
"""

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置：core（默认）仅核心检查；llm/full 包含 LiteLLM Proxy 健康检查",
    ),
):
    """Readiness 检查

    检查项：
    1. workers: worker 池是否在运行
    2. queue: 队列是否启用（disabled 时报告但不判定为未就绪）
    3. litellm_proxy: 根据 profile 决定是否探测 Proxy
    """
    effective_profile = profile or "core"

    checks: dict = {}
    all_ok = True

    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        checks["workers"] = "error: runtime not initialized"
        all_ok = False
    else:
        if runtime.pool.is_running:
            checks["workers"] = runtime.pool.size
        else:
            checks["workers"] = "stopped"
            all_ok = False

        state = runtime.queue.state()
        if not state.is_enabled:
            checks["queue"] = "disabled"
        elif state.is_paused:
            checks["queue"] = "paused"
        elif state.is_processing:
            checks["queue"] = "processing"
        else:
            checks["queue"] = "idle"

    if effective_profile in ("llm", "full"):
        litellm_client = runtime.litellm_client if runtime is not None else None
        if litellm_client is not None:
            try:
                if await litellm_client.health_check():
                    checks["litellm_proxy"] = "ok"
                else:
                    checks["litellm_proxy"] = "unreachable"
                    all_ok = False
            except Exception as e:
                log.warning("health_check_error", error=str(e))
                checks["litellm_proxy"] = "unreachable"
                all_ok = False
        else:
            # Echo 模式：无 litellm_client，跳过探测
            checks["litellm_proxy"] = "skipped"
    else:
        checks["litellm_proxy"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
