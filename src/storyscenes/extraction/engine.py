from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List

from storyscenes.chunker.model import ChunkPlan
from storyscenes.chunker.planner import ChunkPlanner
from storyscenes.config import ExtractionConfig
from storyscenes.control import CancelToken, PipelineCancelled
from storyscenes.tokenizer.counter import StoryTokenizer, Tokenizer

from .aggregator import Accumulator, finalize, fold_outcome
from .llm import LLMClient
from .model import Scene, SceneExtractionRequest, SceneExtractionResult
from .processor import ChunkProcessor, normalize_local_scenes, request_scenes
from .prompts import render_full_story_prompt
from .retry import AttemptFailure, RetryPolicy

logger = logging.getLogger(__name__)


class SceneExtractionFailed(RuntimeError):
    """Raised when the single-shot extraction produced no usable response."""


@dataclass
class SceneExtractionEngine:
    config: ExtractionConfig
    llm: LLMClient
    planner: ChunkPlanner
    processor: ChunkProcessor
    tokenizer_factory: Callable[[], Tokenizer]
    full_story_retry: RetryPolicy

    @classmethod
    def default(
        cls,
        config: ExtractionConfig | None = None,
        llm: LLMClient | None = None,
    ) -> "SceneExtractionEngine":
        config = config or ExtractionConfig()
        llm = llm or config.build_llm()
        retry_policy = RetryPolicy(max_attempts=config.max_retries, base_delay=config.backoff_base_sec)
        return cls(
            config=config,
            llm=llm,
            planner=ChunkPlanner(token_budget=config.token_budget),
            processor=ChunkProcessor(
                llm=llm,
                retry_policy=retry_policy,
                inter_chunk_pause=config.inter_chunk_pause_sec,
                max_output_tokens=config.chunk_max_tokens,
                request_timeout=config.request_timeout,
            ),
            tokenizer_factory=lambda: StoryTokenizer(config.tokenizer_encoding),
            full_story_retry=retry_policy if config.retry_single_shot else RetryPolicy(max_attempts=1),
        )

    def extract(
        self,
        request: SceneExtractionRequest,
        cancel_token: CancelToken | None = None,
    ) -> SceneExtractionResult:
        token = cancel_token or CancelToken()
        with self._acquire_tokenizer() as tokenizer:
            plan = self.planner.plan(request.story_content, request.story_duration, tokenizer)
        if plan.single_shot:
            return self._extract_full_story(request, token)
        return self._extract_chunked(request, plan, token)

    @contextmanager
    def _acquire_tokenizer(self) -> Iterator[Tokenizer]:
        tokenizer = self.tokenizer_factory()
        try:
            yield tokenizer
        finally:
            tokenizer.free()

    def _extract_full_story(
        self,
        request: SceneExtractionRequest,
        token: CancelToken,
    ) -> SceneExtractionResult:
        logger.info("Using single-request extraction")
        prompt = render_full_story_prompt(request)

        def attempt(number: int) -> List[Scene]:
            token.raise_if_cancelled()
            return request_scenes(
                self.llm,
                prompt,
                max_tokens=self.config.full_story_max_tokens,
                timeout=token.clamp_timeout(self.config.request_timeout),
            )

        result = self.full_story_retry.run(attempt, sleep=token.sleep, label="Full story extraction")
        if isinstance(result, AttemptFailure):
            raise SceneExtractionFailed(
                f"Scene extraction failed after {result.attempts} attempts: {result.error}"
            ) from result.error

        scenes = normalize_local_scenes(result.value, request.story_duration)
        logger.info("Single request yielded %s scenes", len(scenes))
        return SceneExtractionResult(
            scenes=scenes,
            scene_count=len(scenes),
            reasoning=f"Extracted {len(scenes)} scenes from the full story",
            chunk_count=1,
        )

    def _extract_chunked(
        self,
        request: SceneExtractionRequest,
        plan: ChunkPlan,
        token: CancelToken,
    ) -> SceneExtractionResult:
        logger.info("Using chunked extraction over %s chunks", plan.chunk_count)
        acc = Accumulator()
        cancelled = False
        try:
            for outcome in self.processor.process_all(plan, request, token):
                acc = fold_outcome(acc, outcome)
        except PipelineCancelled:
            logger.warning("Scene extraction cancelled after %s of %s chunks", acc.chunks_seen, plan.chunk_count)
            cancelled = True
        return finalize(acc, plan.chunk_count, cancelled=cancelled)
