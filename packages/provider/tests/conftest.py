"""Provider 包测试 fixtures"""

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def make_litellm_response():
    """构造 Mock LiteLLM acompletion 返回的工厂"""

    def _make(
        content: str = "Once upon a time",
        model: str = "gpt-4o-mini",
        prompt_tokens: int = 10,
        completion_tokens: int = 20,
        total_tokens: int = 30,
    ):
        response = MagicMock()
        response.model = model

        choice = MagicMock()
        choice.message.content = content
        response.choices = [choice]

        usage = MagicMock()
        usage.prompt_tokens = prompt_tokens
        usage.completion_tokens = completion_tokens
        usage.total_tokens = total_tokens
        response.usage = usage

        response._hidden_params = {"custom_llm_provider": "openai"}
        return response

    return _make
