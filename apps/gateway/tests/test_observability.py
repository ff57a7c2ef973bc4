"""可观测性测试

测试内容：
1. HTTP 响应含 X-Request-ID
2. TraceMiddleware 的 task_id 提取
3. structlog 配置（dev / json）与长字段截断
4. 请求类别（health / stream / api）
"""

import logging

import pytest
import structlog
from httpx import AsyncClient
from quillflow.gateway.middleware.logging_config import TruncateLongFields, setup_logging
from quillflow.gateway.middleware.logging_mw import request_kind
from quillflow.gateway.middleware.trace_mw import extract_task_id

TASK_ID = "01JQ7ZK3M8R5X2V9T4N6B1C0DE"


class TestRequestId:
    """LoggingMiddleware"""

    async def test_request_id_in_response_header(self, client: AsyncClient):
        resp = await client.get("/health")
        request_id = resp.headers.get("X-Request-ID")
        assert request_id is not None
        assert len(request_id) == 26

    async def test_request_ids_are_unique(self, client: AsyncClient):
        first = await client.get("/health")
        second = await client.get("/health")
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


    @pytest.mark.parametrize(
        ("path", "kind"),
        [
            ("/health", "health"),
            ("/ready", "health"),
            ("/api/stream", "stream"),
            (f"/api/stream/task/{TASK_ID}", "stream"),
            ("/api/streaming", "api"),
            ("/api/tasks", "api"),
        ],
    )
    def test_request_kind(self, path: str, kind: str):
        assert request_kind(path) == kind


class TestTraceExtraction:
    """TraceMiddleware 路径解析"""

    @pytest.mark.parametrize(
        "path",
        [
            f"/api/tasks/{TASK_ID}",
            f"/api/tasks/{TASK_ID}/cancel",
            f"/api/stream/task/{TASK_ID}",
        ],
    )
    def test_task_routes(self, path: str):
        assert extract_task_id(path) == TASK_ID

    @pytest.mark.parametrize("path", ["/api/tasks", "/api/queue/start", "/api/tasks/short"])
    def test_non_task_routes(self, path: str):
        assert extract_task_id(path) is None


class TestLoggingSetup:
    """setup_logging"""

    def test_json_renderer(self, monkeypatch):
        monkeypatch.setenv("QUILLFLOW_LOG_FORMAT", "json")
        monkeypatch.setenv("QUILLFLOW_LOG_LEVEL", "warning")
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.WARNING
        assert len(root_logger.handlers) == 1
        formatter = root_logger.handlers[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert logging.getLogger("LiteLLM").level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("QUILLFLOW_LOG_LEVEL", "LOUD")
        setup_logging()
        assert logging.getLogger().level == logging.INFO


class TestTruncateLongFields:
    """正文类长字段截断"""

    def test_long_string_truncated_with_length(self):
        story = "tide " * 400
        event = TruncateLongFields(max_chars=20)(None, "info", {"event": "x", "output": story})
        assert event["output"] == f"{story[:20]}... [{len(story)} chars]"

    def test_short_values_and_event_untouched(self):
        event_dict = {"event": "e" * 50, "task_id": TASK_ID, "count": 12345}
        result = TruncateLongFields(max_chars=30)(None, "info", dict(event_dict))
        assert result == event_dict

    def test_zero_disables(self):
        event = TruncateLongFields(max_chars=0)(None, "info", {"event": "x", "error": "y" * 900})
        assert len(event["error"]) == 900
