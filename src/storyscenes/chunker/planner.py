from __future__ import annotations

import logging

from storyscenes.tokenizer.counter import Tokenizer

from .model import Chunk, ChunkPlan

logger = logging.getLogger(__name__)

MAX_INPUT_TOKENS = 6000
PROMPT_OVERHEAD = 1000


def token_budget_for(max_input_tokens: int = MAX_INPUT_TOKENS, prompt_overhead: int = PROMPT_OVERHEAD) -> int:
    budget = max_input_tokens - prompt_overhead
    if budget < 1:
        raise ValueError(
            f"Prompt overhead ({prompt_overhead}) leaves no room in {max_input_tokens} input tokens"
        )
    return budget


class ChunkPlanner:
    """Decide between one extraction call and a token-bounded chunk sequence."""

    def __init__(self, token_budget: int | None = None) -> None:
        budget = token_budget if token_budget is not None else token_budget_for()
        if budget < 1:
            raise ValueError("token_budget must be positive")
        self.token_budget = budget

    def plan(self, text: str, total_duration: float, tokenizer: Tokenizer) -> ChunkPlan:
        total_tokens = tokenizer.count_tokens(text)
        logger.info("Story contains %s tokens (budget %s)", total_tokens, self.token_budget)

        if total_tokens <= self.token_budget:
            logger.info("Story fits in a single request")
            return ChunkPlan(
                single_shot=True,
                total_tokens=total_tokens,
                token_budget=self.token_budget,
                total_duration_sec=float(total_duration),
            )

        slices = [piece for piece in tokenizer.chunk_text(text, self.token_budget) if piece.strip()]
        chunk_duration = float(total_duration) / len(slices)
        chunks: list[Chunk] = []
        start = 0.0
        for index, piece in enumerate(slices):
            token_count = tokenizer.count_tokens(piece)
            if token_count > self.token_budget:
                logger.warning(
                    "Chunk %s holds an indivisible unit of %s tokens, over the %s token budget",
                    index,
                    token_count,
                    self.token_budget,
                )
            chunks.append(
                Chunk(
                    index=index,
                    text=piece,
                    token_count=token_count,
                    start_time_sec=start,
                    duration_sec=chunk_duration,
                )
            )
            start += chunk_duration

        logger.info(
            "Story split into %s chunks of ~%ss each",
            len(chunks),
            int(chunk_duration),
        )
        return ChunkPlan(
            single_shot=False,
            total_tokens=total_tokens,
            token_budget=self.token_budget,
            total_duration_sec=float(total_duration),
            chunks=chunks,
        )
