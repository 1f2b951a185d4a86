from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List

from storyscenes.chunker.model import Chunk, ChunkPlan
from storyscenes.control import CancelToken

from .llm import ExtractionAttemptError, LLMClient
from .model import Scene, SceneExtractionRequest
from .prompts import SYSTEM_PROMPT, render_chunk_prompt
from .retry import AttemptFailure, RetryPolicy
from .utils import ParseFailure, parse_scene_payload

logger = logging.getLogger(__name__)

INTER_CHUNK_PAUSE_SEC = 0.5


class ScenePayloadError(ExtractionAttemptError):
    """Raised when a completion does not match the expected scene format."""


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of one chunk: local scenes, or a terminal failure marker."""

    chunk: Chunk
    scenes: List[Scene] = field(default_factory=list)
    attempts: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def request_scenes(
    llm: LLMClient,
    prompt: str,
    *,
    max_tokens: int,
    timeout: float,
) -> List[Scene]:
    """Issue one extraction request and return the validated scenes."""
    raw = llm.complete(prompt, system=SYSTEM_PROMPT, max_tokens=max_tokens, timeout=timeout)
    logger.debug("LLM raw response: %s", raw)
    parsed = parse_scene_payload(raw)
    if isinstance(parsed, ParseFailure):
        raise ScenePayloadError(parsed.reason)
    return list(parsed.payload.scenes)


def normalize_local_scenes(scenes: List[Scene], window: float) -> List[Scene]:
    """Renumber scenes 1..k in story order and keep timestamps inside ``[0, window]``."""
    ordered = sorted(scenes, key=lambda scene: scene.scene_number)
    normalized: list[Scene] = []
    floor = 0.0
    for position, scene in enumerate(ordered, start=1):
        timestamp = min(max(scene.timestamp, floor), window)
        floor = timestamp
        normalized.append(scene.model_copy(update={"scene_number": position, "timestamp": timestamp}))
    return normalized


class ChunkProcessor:
    """Runs the per-chunk extraction call under the retry policy."""

    def __init__(
        self,
        llm: LLMClient,
        retry_policy: RetryPolicy | None = None,
        inter_chunk_pause: float = INTER_CHUNK_PAUSE_SEC,
        max_output_tokens: int = 8000,
        request_timeout: float = 120.0,
    ) -> None:
        self.llm = llm
        self.retry_policy = retry_policy or RetryPolicy()
        self.inter_chunk_pause = inter_chunk_pause
        self.max_output_tokens = max_output_tokens
        self.request_timeout = request_timeout

    def process(
        self,
        chunk: Chunk,
        chunk_count: int,
        request: SceneExtractionRequest,
        cancel_token: CancelToken | None = None,
    ) -> ChunkOutcome:
        token = cancel_token or CancelToken()
        prompt = render_chunk_prompt(chunk, chunk_count, request)
        logger.info(
            "Processing chunk %s/%s (%s tokens)",
            chunk.index + 1,
            chunk_count,
            chunk.token_count,
        )

        def attempt(number: int) -> List[Scene]:
            token.raise_if_cancelled()
            return request_scenes(
                self.llm,
                prompt,
                max_tokens=self.max_output_tokens,
                timeout=token.clamp_timeout(self.request_timeout),
            )

        result = self.retry_policy.run(attempt, sleep=token.sleep, label=f"Chunk {chunk.index + 1}")
        if isinstance(result, AttemptFailure):
            logger.error(
                "Failed to process chunk %s after %s attempts: %s",
                chunk.index + 1,
                result.attempts,
                result.error,
            )
            return ChunkOutcome(chunk=chunk, attempts=result.attempts, error=str(result.error))

        scenes = normalize_local_scenes(result.value, chunk.duration_sec)
        logger.info("Chunk %s yielded %s scenes", chunk.index + 1, len(scenes))
        return ChunkOutcome(chunk=chunk, scenes=scenes, attempts=result.attempts)

    def process_all(
        self,
        plan: ChunkPlan,
        request: SceneExtractionRequest,
        cancel_token: CancelToken | None = None,
    ) -> Iterator[ChunkOutcome]:
        """Process chunks in index order, pausing after each successful non-final chunk."""
        token = cancel_token or CancelToken()
        chunk_count = plan.chunk_count
        for chunk in plan.chunks:
            outcome = self.process(chunk, chunk_count, request, token)
            yield outcome
            if not outcome.failed and chunk.index < chunk_count - 1:
                token.sleep(self.inter_chunk_pause)
