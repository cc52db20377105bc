"""LLM client infrastructure — provider SDKs behind one ``complete`` call."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from . import constants

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """Abstract base for LLM API clients."""

    model: str = ""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = constants.TRACE_TEMPERATURE,
        json_response: bool = False,
    ) -> str:
        """Send a prompt to the LLM and return the raw text response."""
        ...


class ClaudeLLMClient(LLMClient):
    """Wraps anthropic.Anthropic() with lazy import and DI."""

    _LAZY_IMPORT = object()

    def __init__(
        self, model: str = constants.CLAUDE_DEFAULT_MODEL, client: Any = _LAZY_IMPORT
    ):
        if client is ClaudeLLMClient._LAZY_IMPORT:
            import anthropic

            self._client = anthropic.Anthropic()
        else:
            self._client = client
        self.model = model

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = constants.TRACE_TEMPERATURE,
        json_response: bool = False,
    ) -> str:
        logger.debug(
            "ClaudeLLMClient.complete: model=%s, max_tokens=%d", self.model, max_tokens
        )
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )
        return response.content[0].text


class OpenAILLMClient(LLMClient):
    """Wraps openai.OpenAI() with lazy import and DI."""

    _LAZY_IMPORT = object()

    def __init__(
        self, model: str = constants.OPENAI_DEFAULT_MODEL, client: Any = _LAZY_IMPORT
    ):
        if client is OpenAILLMClient._LAZY_IMPORT:
            import openai

            self._client = openai.OpenAI()
        else:
            self._client = client
        self.model = model

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = constants.TRACE_TEMPERATURE,
        json_response: bool = False,
    ) -> str:
        logger.debug(
            "%s.complete: model=%s, max_tokens=%d",
            type(self).__name__,
            self.model,
            max_tokens,
        )
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_response:
            kwargs["response_format"] = {"type": "json_object"}
        response = self._client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


class GroqLLMClient(OpenAILLMClient):
    """Groq's OpenAI-compatible chat completions endpoint."""

    _LAZY_IMPORT = object()

    def __init__(
        self,
        model: str = constants.GROQ_DEFAULT_MODEL,
        client: Any = _LAZY_IMPORT,
        base_url: str = constants.GROQ_BASE_URL,
        api_key_env: str = constants.PROVIDER_KEY_ENV[constants.PROVIDER_GROQ],
    ):
        if client is GroqLLMClient._LAZY_IMPORT:
            import os

            import openai

            api_key = os.environ.get(api_key_env, "")
            if not api_key:
                raise ValueError(
                    f"Environment variable {api_key_env} is not set. "
                    "Set it to your Groq API key."
                )
            client = openai.OpenAI(base_url=base_url, api_key=api_key)
        super().__init__(model=model, client=client)


_CLIENT_CLASSES: dict[str, type[LLMClient]] = {
    constants.PROVIDER_GROQ: GroqLLMClient,
    constants.PROVIDER_OPENAI: OpenAILLMClient,
    constants.PROVIDER_CLAUDE: ClaudeLLMClient,
}


def get_llm_client(
    provider: str = constants.PROVIDER_GROQ,
    model: str = "",
    client: Any = None,
) -> LLMClient:
    """Factory for LLM clients.

    Args:
        provider: "groq", "openai", or "claude"
        model: Model name override (empty string = use default)
        client: Pre-built API client for DI/testing
    """
    cls = _CLIENT_CLASSES.get(provider)
    if cls is None:
        raise ValueError(f"Unknown LLM provider: {provider}")
    kwargs: dict[str, Any] = {}
    if model:
        kwargs["model"] = model
    if client is not None:
        kwargs["client"] = client
    return cls(**kwargs)
