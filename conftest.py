"""全局 pytest 配置 -- 测试期间关闭 Logfire 上报"""

import pytest


@pytest.fixture(autouse=True)
def _no_logfire(monkeypatch):
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
