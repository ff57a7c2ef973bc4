"""质量分析结果解析

上游返回的 JSON 可能包裹在 Markdown 代码块中，或夹杂说明文字；
解析失败返回 None，不影响任务结果。
"""

import json
import re

import structlog
from pydantic import ValidationError
from quillflow.core.models import QualityReport

log = structlog.get_logger()

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_SCORE_FIELDS = ("consistency", "completeness", "overall")


def _extract_json_object(text: str) -> str | None:
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_quality_report(text: str) -> QualityReport | None:
    """将分析调用的输出解析为 QualityReport

    分数四舍五入并截断到 0-100；notes 中的非字符串值转为字符串。
    """
    raw = _extract_json_object(text or "")
    if raw is None:
        log.warning("quality_report_unparseable", reason="no_json_object")
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning("quality_report_unparseable", reason="invalid_json", error=str(e))
        return None
    if not isinstance(data, dict):
        log.warning("quality_report_unparseable", reason="not_an_object")
        return None

    try:
        scores = {
            name: min(100, max(0, round(float(data[name])))) for name in _SCORE_FIELDS
        }
    except (KeyError, TypeError, ValueError) as e:
        log.warning("quality_report_unparseable", reason="missing_score", error=str(e))
        return None

    notes = data.get("notes")
    if not isinstance(notes, dict):
        notes = {}

    try:
        return QualityReport(
            **scores,
            notes={str(k): str(v) for k, v in notes.items()},
        )
    except ValidationError as e:
        log.warning("quality_report_unparseable", reason="validation", error=str(e))
        return None
