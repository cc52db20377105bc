"""Remote service interface — request/reply types, transport, and prompting.

The core never talks to the network directly. It receives a
``RemoteService`` that knows whether a credential is present and, if so,
exchanges ``ChatRequest`` objects for ``RemoteReply`` objects through a
transport callable.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from .llm_client import LLMClient, get_llm_client
from . import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass(frozen=True)
class ChatRequest:
    """One chat-completion exchange, in the remote service's request shape."""

    model: str
    messages: tuple[ChatMessage, ...]
    temperature: float = constants.TRACE_TEMPERATURE
    max_tokens: int = constants.TRACE_MAX_TOKENS
    json_response: bool = False

    @property
    def system_prompt(self) -> str:
        return next((m.content for m in self.messages if m.role == "system"), "")

    @property
    def user_message(self) -> str:
        return "\n\n".join(m.content for m in self.messages if m.role == "user")

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass(frozen=True)
class RemoteReply:
    """Outcome of a transport exchange. ``text`` is untrusted."""

    ok: bool
    status: int = 0
    text: str = ""

    @classmethod
    def failure(cls, status: int = 0, text: str = "") -> RemoteReply:
        return cls(ok=False, status=status, text=text)


Transport = Callable[[ChatRequest], RemoteReply]


class LLMClientTransport:
    """Adapts an ``LLMClient`` to the ``Transport`` callable contract.

    Client exceptions (network errors, non-2xx responses, timeouts) become
    unsuccessful replies; they are logged and never propagated.
    """

    def __init__(self, llm_client: LLMClient):
        self._llm_client = llm_client

    def __call__(self, request: ChatRequest) -> RemoteReply:
        try:
            text = self._llm_client.complete(
                system_prompt=request.system_prompt,
                user_message=request.user_message,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                json_response=request.json_response,
            )
        except Exception as exc:
            status = getattr(exc, "status_code", 0) or 0
            logger.warning(
                "Remote call failed (status=%s): %s", status, exc, exc_info=True
            )
            return RemoteReply.failure(status=status, text=str(exc))
        logger.debug("Remote reply length: %d chars", len(text or ""))
        return RemoteReply(ok=True, status=200, text=text or "")


class RemotePrompts:
    """Prompt templates for the remote code-insight requests."""

    TRACE_SYSTEM = (
        "You are a code execution tracer that generates detailed step-by-step "
        "execution traces for code. Always respond with valid JSON."
    )
    ANALYSIS_SYSTEM = (
        "You are a code analysis assistant that provides detailed analysis of "
        "code. Always respond with valid JSON."
    )
    EXPLANATION_SYSTEM = (
        "You are a code explanation assistant that provides detailed "
        "explanations of code. Always respond with valid JSON."
    )
    ANSWER_SYSTEM = (
        "You are a code assistant that answers questions about code with "
        "accurate and helpful explanations."
    )

    TRACE_TEMPLATE = """\
Analyze the following {language} code and generate a detailed execution trace:

```{language}
{source}
```

Provide a step-by-step execution trace in the following JSON format:
{{
  "executionTrace": [
    {{
      "line": <zero-based line number>,
      "code": <code at this line>,
      "variables": {{<variable name>: <variable value>}},
      "callStack": [<function names in call stack, outermost first>],
      "output": <all console output produced so far>,
      "explanation": <brief explanation of what happens at this step>
    }}
  ]
}}

Return ONLY the JSON object, nothing else."""

    ANALYSIS_TEMPLATE = """\
Analyze the following {language} code:

```{language}
{source}
```

Provide a detailed analysis in the following JSON format:
{{
  "explanation": "Brief explanation of what the code does",
  "complexity": {{
    "time": "Time complexity (e.g., O(n))",
    "space": "Space complexity (e.g., O(1))"
  }},
  "suggestions": ["Suggestion 1", "Suggestion 2"]
}}

Return ONLY the JSON object, nothing else."""

    EXPLANATION_TEMPLATE = """\
Explain the following {language} code in detail:

```{language}
{source}
```

Provide a detailed explanation in the following JSON format:
{{
  "summary": "Brief summary of what the code does",
  "lineByLineExplanation": [
    {{"line": 1, "code": "def example():", "explanation": "Defines a function named example"}}
  ]
}}

Return ONLY the JSON object, nothing else."""

    ANSWER_TEMPLATE = """\
Answer a question about the following {language} code:

```{language}
{source}
```

Question: {question}

Provide a clear, detailed, and accurate answer to the question."""


class RemoteService(ABC):
    """Handle passed explicitly to everything that may consult the remote model."""

    @abstractmethod
    def has_credential(self) -> bool: ...

    @abstractmethod
    def generate_trace(self, source: str, language: str) -> RemoteReply: ...

    @abstractmethod
    def analyze(self, source: str, language: str) -> RemoteReply: ...

    @abstractmethod
    def explain(self, source: str, language: str) -> RemoteReply: ...

    @abstractmethod
    def answer(self, source: str, language: str, question: str) -> RemoteReply: ...


class OfflineRemoteService(RemoteService):
    """No credential: every exchange fails immediately without I/O."""

    def has_credential(self) -> bool:
        return False

    def generate_trace(self, source: str, language: str) -> RemoteReply:
        return RemoteReply.failure()

    def analyze(self, source: str, language: str) -> RemoteReply:
        return RemoteReply.failure()

    def explain(self, source: str, language: str) -> RemoteReply:
        return RemoteReply.failure()

    def answer(self, source: str, language: str, question: str) -> RemoteReply:
        return RemoteReply.failure()


@dataclass
class PromptingRemoteService(RemoteService):
    """Builds prompts for each request kind and sends them through *transport*."""

    transport: Transport
    model: str = constants.GROQ_DEFAULT_MODEL
    credential_present: bool = True
    trace_temperature: float = constants.TRACE_TEMPERATURE
    trace_max_tokens: int = constants.TRACE_MAX_TOKENS
    calls: int = field(default=0, init=False)

    def has_credential(self) -> bool:
        return self.credential_present

    def _exchange(
        self,
        system: str,
        user: str,
        temperature: float,
        max_tokens: int,
        json_response: bool,
    ) -> RemoteReply:
        if not self.credential_present:
            logger.info("No credential configured, skipping remote call")
            return RemoteReply.failure()
        request = ChatRequest(
            model=self.model,
            messages=(ChatMessage("system", system), ChatMessage("user", user)),
            temperature=temperature,
            max_tokens=max_tokens,
            json_response=json_response,
        )
        self.calls += 1
        logger.info(
            "Remote request #%d: model=%s, max_tokens=%d",
            self.calls,
            self.model,
            max_tokens,
        )
        return self.transport(request)

    def generate_trace(self, source: str, language: str) -> RemoteReply:
        return self._exchange(
            RemotePrompts.TRACE_SYSTEM,
            RemotePrompts.TRACE_TEMPLATE.format(language=language, source=source),
            self.trace_temperature,
            self.trace_max_tokens,
            json_response=True,
        )

    def analyze(self, source: str, language: str) -> RemoteReply:
        return self._exchange(
            RemotePrompts.ANALYSIS_SYSTEM,
            RemotePrompts.ANALYSIS_TEMPLATE.format(language=language, source=source),
            constants.ANALYSIS_TEMPERATURE,
            constants.INSIGHT_MAX_TOKENS,
            json_response=True,
        )

    def explain(self, source: str, language: str) -> RemoteReply:
        return self._exchange(
            RemotePrompts.EXPLANATION_SYSTEM,
            RemotePrompts.EXPLANATION_TEMPLATE.format(language=language, source=source),
            constants.ANALYSIS_TEMPERATURE,
            constants.INSIGHT_MAX_TOKENS,
            json_response=True,
        )

    def answer(self, source: str, language: str, question: str) -> RemoteReply:
        return self._exchange(
            RemotePrompts.ANSWER_SYSTEM,
            RemotePrompts.ANSWER_TEMPLATE.format(
                language=language, source=source, question=question
            ),
            constants.ANSWER_TEMPERATURE,
            constants.INSIGHT_MAX_TOKENS,
            json_response=False,
        )


def get_remote_service(
    provider: str = constants.PROVIDER_GROQ,
    model: str = "",
    credential_present: bool = False,
    client: Any = None,
    temperature: float = constants.TRACE_TEMPERATURE,
    max_tokens: int = constants.TRACE_MAX_TOKENS,
) -> RemoteService:
    """Factory for remote services.

    Without a credential no SDK client is constructed and an
    ``OfflineRemoteService`` is returned.
    """
    if not credential_present:
        return OfflineRemoteService()

    llm_client = get_llm_client(provider=provider, model=model, client=client)
    return PromptingRemoteService(
        transport=LLMClientTransport(llm_client),
        model=llm_client.model,
        credential_present=True,
        trace_temperature=temperature,
        trace_max_tokens=max_tokens,
    )
