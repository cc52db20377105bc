"""Tests for visualizer.remote — request shape, transport and services."""

from __future__ import annotations

from visualizer.remote import (
    ChatMessage,
    ChatRequest,
    LLMClientTransport,
    OfflineRemoteService,
    PromptingRemoteService,
    RemoteReply,
    get_remote_service,
)
from visualizer.llm_client import LLMClient


class FakeLLMClient(LLMClient):
    """Returns a canned reply and records the last call."""

    def __init__(self, reply: str = "{}", error: Exception | None = None):
        self.model = "fake-model"
        self._reply = reply
        self._error = error
        self.last_call: dict = {}

    def complete(
        self,
        system_prompt,
        user_message,
        max_tokens=4096,
        temperature=0.2,
        json_response=False,
    ):
        self.last_call = {
            "system_prompt": system_prompt,
            "user_message": user_message,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "json_response": json_response,
        }
        if self._error is not None:
            raise self._error
        return self._reply


class FakeStatusError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class RecordingTransport:
    def __init__(self, reply: RemoteReply | None = None):
        self.requests: list[ChatRequest] = []
        self._reply = reply or RemoteReply(ok=True, status=200, text="{}")

    def __call__(self, request: ChatRequest) -> RemoteReply:
        self.requests.append(request)
        return self._reply


class TestChatRequest:
    def test_payload_shape(self):
        request = ChatRequest(
            model="llama3-70b-8192",
            messages=(ChatMessage("system", "sys"), ChatMessage("user", "hi")),
            temperature=0.2,
            max_tokens=4000,
        )
        assert request.to_payload() == {
            "model": "llama3-70b-8192",
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "hi"},
            ],
            "temperature": 0.2,
            "max_tokens": 4000,
        }

    def test_prompt_accessors(self):
        request = ChatRequest(
            model="m",
            messages=(ChatMessage("system", "sys"), ChatMessage("user", "hi")),
        )
        assert request.system_prompt == "sys"
        assert request.user_message == "hi"


class TestLLMClientTransport:
    def test_successful_reply(self):
        client = FakeLLMClient(reply='{"answer": "yes"}')
        transport = LLMClientTransport(client)
        reply = transport(
            ChatRequest(
                model="m",
                messages=(ChatMessage("system", "s"), ChatMessage("user", "u")),
                temperature=0.3,
                max_tokens=2000,
                json_response=True,
            )
        )
        assert reply.ok
        assert reply.text == '{"answer": "yes"}'
        assert client.last_call["temperature"] == 0.3
        assert client.last_call["max_tokens"] == 2000
        assert client.last_call["json_response"] is True

    def test_client_error_becomes_failed_reply(self):
        transport = LLMClientTransport(FakeLLMClient(error=FakeStatusError(503)))
        reply = transport(ChatRequest(model="m", messages=()))
        assert not reply.ok
        assert reply.status == 503

    def test_error_without_status(self):
        transport = LLMClientTransport(FakeLLMClient(error=ConnectionError("down")))
        reply = transport(ChatRequest(model="m", messages=()))
        assert not reply.ok
        assert reply.status == 0


class TestPromptingRemoteService:
    def test_trace_request_uses_trace_tuning(self):
        transport = RecordingTransport()
        service = PromptingRemoteService(transport=transport, model="llama3-70b-8192")
        service.generate_trace("x = 1", "python")

        request = transport.requests[0]
        assert request.temperature == 0.2
        assert request.max_tokens == 4000
        assert request.json_response is True
        assert "executionTrace" in request.user_message
        assert "x = 1" in request.user_message

    def test_answer_request_is_plain_text(self):
        transport = RecordingTransport()
        service = PromptingRemoteService(transport=transport)
        service.answer("x = 1", "python", "What is x?")

        request = transport.requests[0]
        assert request.temperature == 0.3
        assert request.max_tokens == 2000
        assert request.json_response is False
        assert "Question: What is x?" in request.user_message

    def test_analysis_and_explanation_prompts(self):
        transport = RecordingTransport()
        service = PromptingRemoteService(transport=transport)
        service.analyze("x = 1", "python")
        service.explain("x = 1", "python")

        assert '"complexity"' in transport.requests[0].user_message
        assert '"lineByLineExplanation"' in transport.requests[1].user_message
        assert service.calls == 2

    def test_without_credential_transport_is_not_called(self):
        transport = RecordingTransport()
        service = PromptingRemoteService(transport=transport, credential_present=False)
        reply = service.generate_trace("x = 1", "python")
        assert not reply.ok
        assert transport.requests == []

    def test_configured_trace_tuning(self):
        transport = RecordingTransport()
        service = PromptingRemoteService(
            transport=transport, trace_temperature=0.7, trace_max_tokens=1000
        )
        service.generate_trace("x = 1", "python")
        assert transport.requests[0].temperature == 0.7
        assert transport.requests[0].max_tokens == 1000


class TestOfflineRemoteService:
    def test_every_exchange_fails(self):
        service = OfflineRemoteService()
        assert not service.has_credential()
        assert not service.generate_trace("x", "python").ok
        assert not service.analyze("x", "python").ok
        assert not service.explain("x", "python").ok
        assert not service.answer("x", "python", "q").ok


class FakeOpenAIClient:
    """Fake openai.OpenAI() for testing."""

    def __init__(self):
        self.chat = type("Chat", (), {"completions": self})()

    def create(self, **kwargs):
        message = type("Msg", (), {"content": "{}"})()
        return type("Resp", (), {"choices": [type("C", (), {"message": message})()]})()


class TestGetRemoteService:
    def test_no_credential_is_offline(self):
        assert isinstance(get_remote_service(), OfflineRemoteService)

    def test_credential_builds_prompting_service(self):
        service = get_remote_service(
            provider="openai", credential_present=True, client=FakeOpenAIClient()
        )
        assert isinstance(service, PromptingRemoteService)
        assert service.has_credential()
        assert service.model == "gpt-4o"
        assert service.generate_trace("x = 1", "python").ok
