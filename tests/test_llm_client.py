"""Tests for visualizer.llm_client."""

from __future__ import annotations

import pytest

from visualizer.llm_client import (
    ClaudeLLMClient,
    GroqLLMClient,
    OpenAILLMClient,
    get_llm_client,
    LLMClient,
)


class FakeAnthropicResponse:
    """Mimics anthropic message response structure."""

    def __init__(self, text: str):
        self.content = [type("Block", (), {"text": text})()]


class FakeAnthropicClient:
    """Fake anthropic.Anthropic() for testing."""

    def __init__(self):
        self.messages = self
        self.last_call = {}

    def create(self, **kwargs):
        self.last_call = kwargs
        return FakeAnthropicResponse("fake claude response")


class FakeOpenAIResponse:
    """Mimics openai chat completion response structure."""

    def __init__(self, text):
        self.choices = [
            type("Choice", (), {"message": type("Msg", (), {"content": text})()})()
        ]


class FakeOpenAIClient:
    """Fake openai.OpenAI() for testing."""

    def __init__(self, text="fake openai response"):
        self.chat = type("Chat", (), {"completions": self})()
        self.last_call = {}
        self._text = text

    def create(self, **kwargs):
        self.last_call = kwargs
        return FakeOpenAIResponse(self._text)


class TestClaudeLLMClient:
    def test_complete_with_injected_client(self):
        fake = FakeAnthropicClient()
        client = ClaudeLLMClient(client=fake)
        result = client.complete("sys prompt", "user msg", max_tokens=512)

        assert result == "fake claude response"
        assert fake.last_call["model"] == "claude-sonnet-4-20250514"
        assert fake.last_call["system"] == "sys prompt"
        assert fake.last_call["max_tokens"] == 512
        assert fake.last_call["messages"] == [{"role": "user", "content": "user msg"}]

    def test_temperature_forwarded(self):
        fake = FakeAnthropicClient()
        ClaudeLLMClient(client=fake).complete("s", "u", temperature=0.3)
        assert fake.last_call["temperature"] == 0.3

    def test_custom_model(self):
        fake = FakeAnthropicClient()
        client = ClaudeLLMClient(model="claude-haiku-35", client=fake)
        client.complete("s", "u")
        assert fake.last_call["model"] == "claude-haiku-35"
        assert client.model == "claude-haiku-35"


class TestOpenAILLMClient:
    def test_complete_with_injected_client(self):
        fake = FakeOpenAIClient()
        client = OpenAILLMClient(client=fake)
        result = client.complete(
            "sys prompt", "user msg", max_tokens=256, json_response=True
        )

        assert result == "fake openai response"
        assert fake.last_call["model"] == "gpt-4o"
        assert fake.last_call["max_tokens"] == 256
        assert fake.last_call["response_format"] == {"type": "json_object"}
        messages = fake.last_call["messages"]
        assert messages[0] == {"role": "system", "content": "sys prompt"}
        assert messages[1] == {"role": "user", "content": "user msg"}

    def test_plain_text_request_has_no_response_format(self):
        fake = FakeOpenAIClient()
        OpenAILLMClient(client=fake).complete("s", "u")
        assert "response_format" not in fake.last_call

    def test_none_content_becomes_empty_string(self):
        fake = FakeOpenAIClient(text=None)
        assert OpenAILLMClient(client=fake).complete("s", "u") == ""

    def test_custom_model(self):
        fake = FakeOpenAIClient()
        client = OpenAILLMClient(model="gpt-3.5-turbo", client=fake)
        client.complete("s", "u")
        assert fake.last_call["model"] == "gpt-3.5-turbo"


class TestGroqLLMClient:
    def test_default_model(self):
        fake = FakeOpenAIClient()
        client = GroqLLMClient(client=fake)
        client.complete("s", "u", temperature=0.2, max_tokens=4000)
        assert fake.last_call["model"] == "llama3-70b-8192"
        assert fake.last_call["temperature"] == 0.2
        assert fake.last_call["max_tokens"] == 4000

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        with pytest.raises(ValueError, match="GROQ_API_KEY"):
            GroqLLMClient()


class TestGetLLMClient:
    def test_groq_is_default(self):
        client = get_llm_client(client=FakeOpenAIClient())
        assert isinstance(client, GroqLLMClient)

    def test_claude_default(self):
        fake = FakeAnthropicClient()
        client = get_llm_client(provider="claude", client=fake)
        assert isinstance(client, ClaudeLLMClient)

    def test_openai_default(self):
        fake = FakeOpenAIClient()
        client = get_llm_client(provider="openai", client=fake)
        assert isinstance(client, OpenAILLMClient)
        assert not isinstance(client, GroqLLMClient)

    def test_claude_with_model(self):
        fake = FakeAnthropicClient()
        client = get_llm_client(provider="claude", model="custom-model", client=fake)
        assert isinstance(client, LLMClient)
        client.complete("s", "u")
        assert fake.last_call["model"] == "custom-model"

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_llm_client(provider="gemini")
