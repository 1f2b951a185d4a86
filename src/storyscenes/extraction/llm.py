from __future__ import annotations

import abc
import json
import logging
from typing import Any, Iterable

import requests
from anthropic import Anthropic, APIError

logger = logging.getLogger(__name__)


class ExtractionAttemptError(RuntimeError):
    """Base for failures that count as one failed extraction attempt."""


class LLMRequestError(ExtractionAttemptError):
    """Raised when the inference service cannot produce a completion."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServiceUnavailableError(RuntimeError):
    """Raised when the inference service is not configured or reachable."""


class LLMClient(abc.ABC):
    """Abstract interface for language models used in the pipeline."""

    @abc.abstractmethod
    def complete(self, prompt: str, **kwargs: Any) -> str:
        raise NotImplementedError


class EchoLLM(LLMClient):
    """Development stub that never finds any scenes."""

    def complete(self, prompt: str, **kwargs: Any) -> str:
        placeholder = {
            "scenes": [],
            "sceneCount": 0,
            "reasoning": "Stub response",
        }
        return json.dumps(placeholder)


class OpenAIChatLLM(LLMClient):
    """Chat Completions client speaking JSON mode over plain HTTP."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 8000,
        request_timeout: float = 120.0,
        base_url: str = "https://api.openai.com/v1",
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ServiceUnavailableError("OpenAI API key not configured")
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt or "You are a helpful assistant that answers in JSON."
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def complete(self, prompt: str, **kwargs: Any) -> str:
        timeout = kwargs.pop("timeout", self.request_timeout)
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": kwargs.pop("system", self.system_prompt)},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            "temperature": kwargs.pop("temperature", self.temperature),
            "response_format": {"type": "json_object"},
        }
        payload.update(kwargs)
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise LLMRequestError(f"Chat completion request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Chat completion failed (%s): %s", response.status_code, response.text)
            raise LLMRequestError(
                f"Chat completion failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMRequestError("Chat completion response missing message content") from exc
        if choice.get("finish_reason") == "length":
            logger.warning(
                "Chat completion truncated by max_tokens; consider increasing limit (current=%s)",
                payload["max_tokens"],
            )
        if not isinstance(content, str):
            raise LLMRequestError("Chat completion returned non-text content")
        return content


class ClaudeLLM(LLMClient):
    """Anthropic Messages API wrapper."""

    def __init__(
        self,
        client: Anthropic,
        model: str,
        system_prompt: str | None = None,
        max_tokens: int = 8000,
        temperature: float = 0.7,
    ) -> None:
        self.client = client
        self.model = model
        self.system_prompt = system_prompt or (
            "You are an expert at visual storytelling. Always respond with a single JSON object."
        )
        self.max_tokens = max_tokens
        self.temperature = temperature

    def complete(self, prompt: str, **kwargs: Any) -> str:
        params: dict[str, Any] = {
            "model": self.model,
            "system": kwargs.pop("system", self.system_prompt),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            "temperature": kwargs.pop("temperature", self.temperature),
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": prompt,
                        }
                    ],
                }
            ],
        }
        params.update(kwargs)
        try:
            response = self.client.messages.create(**params)
        except APIError as exc:
            status = getattr(exc, "status_code", None)
            raise LLMRequestError(f"Claude request failed: {exc}", status_code=status) from exc
        stop_reason = getattr(response, "stop_reason", None)
        if stop_reason == "max_tokens":
            logger.warning(
                "Claude response truncated by max_tokens; consider increasing limit (current=%s)",
                params.get("max_tokens"),
            )
        return _collect_text(response.content)


def _collect_text(blocks: Iterable[Any]) -> str:
    parts: list[str] = []
    for block in blocks:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text = getattr(block, "text", "")
            parts.append(text)
    return "".join(parts)
