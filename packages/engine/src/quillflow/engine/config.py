"""EngineConfig -- 引擎运行期配置

重试、退避、并发、节流与分块参数，从环境变量加载；
非法值记录 warning 并回退默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, ConfigDict, Field
from quillflow.core.config import (
    CHUNK_SIZE,
    CONTEXT_WINDOW_CHARS,
    ERROR_PREVIEW_LENGTH,
    LENGTH_TOLERANCE,
)

from .retry import RetryPolicy

log = structlog.get_logger()


class EngineConfig(BaseModel):
    """引擎配置

    环境变量:
        QUILLFLOW_WORKER_COUNT: worker 数量（默认 1）
        QUILLFLOW_MAX_RETRIES: 每次调用的总尝试次数（默认 3）
        QUILLFLOW_SERVER_BACKOFF_S: 单任务模式服务端故障退避基数（默认 5）
        QUILLFLOW_QUEUE_SERVER_BACKOFF_S: 队列模式服务端故障退避基数（默认 6）
        QUILLFLOW_OVERLOAD_BACKOFF_S: 过载退避基数（默认 60）
        QUILLFLOW_INTER_CHUNK_DELAY_S: chunk 间节流延迟（默认 1）
        QUILLFLOW_FIRST_CHUNK_DELAY_S: 首个 chunk 前延迟（默认 0）
        QUILLFLOW_QUALITY_ANALYSIS: 是否启用质量分析（默认 false）
        QUILLFLOW_QUEUE_AUTOSTART: 网关启动时是否自动开始处理（默认 true）
    """

    model_config = ConfigDict(frozen=True)

    worker_count: int = Field(default=1, ge=1, description="并发 worker 数")
    max_retries: int = Field(default=3, ge=1, description="单次调用总尝试次数")
    server_backoff_base_s: float = Field(default=5.0, ge=0)
    queue_server_backoff_base_s: float = Field(default=6.0, ge=0)
    overload_backoff_base_s: float = Field(default=60.0, ge=0)
    inter_chunk_delay_s: float = Field(default=1.0, ge=0)
    first_chunk_delay_s: float = Field(default=0.0, ge=0)
    chunk_size: int = Field(default=CHUNK_SIZE, ge=1, description="每个 chunk 的目标词数")
    context_window_chars: int = Field(default=CONTEXT_WINDOW_CHARS, ge=0)
    length_tolerance: float = Field(default=LENGTH_TOLERANCE, ge=0, lt=1)
    quality_analysis_enabled: bool = False
    error_preview_length: int = Field(default=ERROR_PREVIEW_LENGTH, ge=1)
    auto_start: bool = True

    def retry_policy(self, queue_mode: bool = True) -> RetryPolicy:
        """按运行模式构造重试策略"""
        return RetryPolicy(
            max_attempts=self.max_retries,
            server_backoff_base_s=(
                self.queue_server_backoff_base_s if queue_mode else self.server_backoff_base_s
            ),
            overload_backoff_base_s=self.overload_backoff_base_s,
        )


_INT_FIELDS = {
    "QUILLFLOW_WORKER_COUNT": "worker_count",
    "QUILLFLOW_MAX_RETRIES": "max_retries",
}
_FLOAT_FIELDS = {
    "QUILLFLOW_SERVER_BACKOFF_S": "server_backoff_base_s",
    "QUILLFLOW_QUEUE_SERVER_BACKOFF_S": "queue_server_backoff_base_s",
    "QUILLFLOW_OVERLOAD_BACKOFF_S": "overload_backoff_base_s",
    "QUILLFLOW_INTER_CHUNK_DELAY_S": "inter_chunk_delay_s",
    "QUILLFLOW_FIRST_CHUNK_DELAY_S": "first_chunk_delay_s",
}
_BOOL_FIELDS = {
    "QUILLFLOW_QUALITY_ANALYSIS": "quality_analysis_enabled",
    "QUILLFLOW_QUEUE_AUTOSTART": "auto_start",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_engine_config() -> EngineConfig:
    """从环境变量加载引擎配置"""
    defaults = EngineConfig()
    kwargs: dict = {}

    for env_var, field in _INT_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                parsed = int(val)
            except ValueError:
                parsed = None
            if parsed is None or parsed < 1:
                log.warning(
                    "invalid_engine_config",
                    env_var=env_var,
                    value=val,
                    fallback=getattr(defaults, field),
                )
                continue
            kwargs[field] = parsed

    for env_var, field in _FLOAT_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                parsed_f = float(val)
            except ValueError:
                parsed_f = -1.0
            if parsed_f < 0:
                log.warning(
                    "invalid_engine_config",
                    env_var=env_var,
                    value=val,
                    fallback=getattr(defaults, field),
                )
                continue
            kwargs[field] = parsed_f

    for env_var, field in _BOOL_FIELDS.items():
        if val := os.environ.get(env_var):
            lowered = val.strip().lower()
            if lowered in _TRUE_VALUES:
                kwargs[field] = True
            elif lowered in _FALSE_VALUES:
                kwargs[field] = False
            else:
                log.warning(
                    "invalid_engine_config",
                    env_var=env_var,
                    value=val,
                    fallback=getattr(defaults, field),
                )

    return EngineConfig(**kwargs)
