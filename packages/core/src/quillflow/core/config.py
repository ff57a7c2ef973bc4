"""配置常量模块 -- 可通过环境变量覆盖

包含分块大小、上下文窗口、长度容差、进度预留比例、事件队列容量等可配置常量。
引擎运行期参数（重试、并发、节流）见 quillflow.engine.config。
"""

import os

# 每个 chunk 的目标生成量（单位：词）
CHUNK_SIZE: int = int(os.environ.get("QUILLFLOW_CHUNK_SIZE", "1000"))

# 续写时携带的上文窗口（字符数，取已生成内容的尾部）
CONTEXT_WINDOW_CHARS: int = int(
    os.environ.get("QUILLFLOW_CONTEXT_WINDOW_CHARS", "2000")
)

# 长度归一化容差（目标长度的 ±10%）
LENGTH_TOLERANCE: float = float(os.environ.get("QUILLFLOW_LENGTH_TOLERANCE", "0.1"))

# 分块阶段最多推进到的进度百分比，余量留给归一化/质量分析
PROGRESS_BASE_FRACTION: int = 90

# 质量分析阶段开始前的进度
PROGRESS_ANALYSIS_MARK: int = 95

# 每个订阅者事件队列的最大长度（满则丢弃该订阅者）
EVENT_QUEUE_MAXSIZE: int = int(os.environ.get("QUILLFLOW_EVENT_QUEUE_MAXSIZE", "256"))

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("QUILLFLOW_SSE_HEARTBEAT_INTERVAL", "15")
)

# 错误信息截断长度（写入 Task.error）
ERROR_PREVIEW_LENGTH: int = 500

# 续写上文被截断时的前缀
CONTEXT_TRUNCATION_MARK: str = "...\n"
