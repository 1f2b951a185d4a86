from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from storyscenes.chunker.planner import MAX_INPUT_TOKENS, PROMPT_OVERHEAD, token_budget_for
from storyscenes.extraction.llm import ClaudeLLM, EchoLLM, LLMClient, OpenAIChatLLM, ServiceUnavailableError
from storyscenes.extraction.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class ExtractionConfig(BaseModel):
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o"
    openai_api_key_env: str = "OPENAI_API_KEY"
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_api_key_env: str = "ANTHROPIC_API_KEY"
    temperature: float = 0.7
    request_timeout: float = 120.0
    # Token budget
    tokenizer_encoding: str = "cl100k_base"
    max_input_tokens: int = Field(default=MAX_INPUT_TOKENS, gt=0)
    prompt_overhead: int = Field(default=PROMPT_OVERHEAD, ge=0)
    full_story_max_tokens: int = 16000
    chunk_max_tokens: int = 8000
    # Retry and pacing
    max_retries: int = Field(default=3, ge=1)
    backoff_base_sec: float = Field(default=1.0, ge=0.0)
    inter_chunk_pause_sec: float = Field(default=0.5, ge=0.0)
    retry_single_shot: bool = True

    @classmethod
    def from_file(cls, path: Path) -> "ExtractionConfig":
        text = path.read_text(encoding="utf-8")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            import yaml  # type: ignore[import-untyped]

            payload = yaml.safe_load(text)
        return cls.model_validate(payload or {})

    @property
    def token_budget(self) -> int:
        return token_budget_for(self.max_input_tokens, self.prompt_overhead)

    def build_llm(self) -> LLMClient:
        provider = self.llm_provider.lower()
        if provider == "openai":
            api_key = os.getenv(self.openai_api_key_env)
            if not api_key:
                raise ServiceUnavailableError(
                    f"API key not configured. Set {self.openai_api_key_env} in your environment."
                )
            return OpenAIChatLLM(
                api_key=api_key,
                model=self.llm_model,
                system_prompt=SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.chunk_max_tokens,
                request_timeout=self.request_timeout,
                base_url=self.openai_base_url,
            )
        if provider == "claude":
            from anthropic import Anthropic

            api_key = os.getenv(self.anthropic_api_key_env)
            if not api_key:
                raise ServiceUnavailableError(
                    f"API key not configured. Set {self.anthropic_api_key_env} in your environment."
                )
            return ClaudeLLM(
                client=Anthropic(api_key=api_key, timeout=self.request_timeout),
                model=self.llm_model,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self.chunk_max_tokens,
                temperature=self.temperature,
            )
        if provider == "echo":
            logger.warning("Using EchoLLM; no scenes will be extracted")
            return EchoLLM()
        raise ServiceUnavailableError(f"Unsupported llm_provider '{self.llm_provider}'")
