"""
Tests for the OpenAI provider with the SDK client stubbed out.
"""
from types import SimpleNamespace

import pytest

from intavia.llm.openai_provider import OpenAIProvider


class StubCompletions:
    def __init__(self):
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"overall_score": 70}'), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=1000, completion_tokens=500),
        )


@pytest.fixture
def provider(settings):
    provider = OpenAIProvider(settings)
    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=StubCompletions()))
    return provider


def test_chat_uses_default_model_and_json_mode(provider, settings):
    response = provider.chat([{"role": "user", "content": "Evaluate"}], json_mode=True)

    sent = provider.client.chat.completions.kwargs
    assert sent["model"] == settings.openai_model
    assert sent["response_format"] == {"type": "json_object"}
    assert response.content == '{"overall_score": 70}'
    assert response.tokens_in == 1000
    assert response.metadata == {"finish_reason": "stop"}


def test_cost_estimate_for_known_and_unknown_models(provider):
    assert provider.estimate_cost(1_000_000, 1_000_000, "gpt-4o") == pytest.approx(12.5)
    assert provider.estimate_cost(1_000_000, 0, "some-future-model") == pytest.approx(0.15)


def test_missing_api_key_is_rejected(settings):
    settings.openai_api_key = None

    with pytest.raises(ValueError):
        OpenAIProvider(settings)
