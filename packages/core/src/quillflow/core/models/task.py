"""Task Domain Model

Task 是队列中的一个生成工作单元；settings 在入队时快照，之后不可修改，
保证相同输入可确定性重放。
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import ErrorKind, TaskStatus


def utc_now() -> datetime:
    return datetime.now(UTC)


class GenerationSettings(BaseModel):
    """生成参数快照（入队后冻结）"""

    model_config = ConfigDict(frozen=True)

    target_size: int = Field(ge=1, description="目标长度（词）")
    style: str = Field(default="", description="写作风格")
    language: str = Field(default="English", description="输出语言")
    overrides: dict[str, Any] = Field(
        default_factory=dict,
        description="按任务覆盖的参数（如 quality_analysis、chunk_size）",
    )


class QualityReport(BaseModel):
    """质量分析报告"""

    consistency: int = Field(ge=0, le=100, description="一致性评分")
    completeness: int = Field(ge=0, le=100, description="完整性评分")
    overall: int = Field(ge=0, le=100, description="综合评分")
    notes: dict[str, str] = Field(default_factory=dict, description="分项评语")


class Task(BaseModel):
    """Task 数据模型

    不变量：output 当且仅当 status == COMPLETED 时非空。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(default="", description="展示用标题")
    kind: str = Field(default="write-story", description="任务类型，决定提示词策略与配额动作")
    input: Any = Field(description="与 provider 无关的输入负载（大纲、原文等）")
    settings: GenerationSettings = Field(description="入队时的生成参数快照")
    status: TaskStatus = Field(default=TaskStatus.WAITING, description="当前状态")
    progress: int = Field(default=0, ge=0, le=100, description="进度百分比")
    output: str | None = Field(default=None, description="生成结果，仅 COMPLETED 时设置")
    error: str | None = Field(default=None, description="错误信息")
    error_kind: ErrorKind | None = Field(default=None, description="错误分类")
    quality_report: QualityReport | None = Field(default=None, description="质量分析报告")
    added_at: datetime = Field(default_factory=utc_now, description="入队时间")
    started_at: datetime | None = Field(default=None, description="开始处理时间")
    completed_at: datetime | None = Field(default=None, description="进入终态时间")

    @property
    def processing_seconds(self) -> float | None:
        """处理耗时（秒），未开始或未结束时为 None"""
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class QueueSystemState(BaseModel):
    """队列系统状态快照"""

    is_enabled: bool = True
    is_paused: bool = False
    is_processing: bool = False
    current_items: list[str] = Field(default_factory=list, description="每个忙碌 worker 的 task_id")
    completed_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    average_processing_time: float = Field(default=0.0, ge=0.0, description="已完成任务平均耗时（秒）")


class TaskSubmission(BaseModel):
    """一次任务提交（单个或批量入队）"""

    input: Any = Field(description="任务输入负载")
    settings: GenerationSettings
    title: str = ""
    kind: str = "write-story"
