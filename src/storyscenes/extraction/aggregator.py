from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Tuple

from .model import Scene, SceneExtractionResult
from .processor import ChunkOutcome
from .reconciler import reconcile_scenes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accumulator:
    """Running state threaded through the fold over chunk outcomes."""

    scenes: Tuple[Scene, ...] = ()
    scenes_so_far: int = 0
    chunks_seen: int = 0
    failed_chunks: Tuple[int, ...] = ()


def fold_outcome(acc: Accumulator, outcome: ChunkOutcome) -> Accumulator:
    if outcome.failed:
        return replace(
            acc,
            chunks_seen=acc.chunks_seen + 1,
            failed_chunks=acc.failed_chunks + (outcome.chunk.index,),
        )
    rewritten = reconcile_scenes(outcome.scenes, acc.scenes_so_far, outcome.chunk.start_time_sec)
    return replace(
        acc,
        scenes=acc.scenes + tuple(rewritten),
        scenes_so_far=acc.scenes_so_far + len(rewritten),
        chunks_seen=acc.chunks_seen + 1,
    )


def aggregate(outcomes: Iterable[ChunkOutcome], initial: Accumulator | None = None) -> Accumulator:
    return reduce(fold_outcome, outcomes, initial or Accumulator())


def finalize(acc: Accumulator, chunk_count: int, cancelled: bool = False) -> SceneExtractionResult:
    scenes = sorted(acc.scenes, key=lambda scene: scene.scene_number)
    reasoning = f"Extracted {len(scenes)} scenes from {chunk_count} chunks"
    if acc.failed_chunks:
        failed = ", ".join(str(index + 1) for index in acc.failed_chunks)
        reasoning += f" ({len(acc.failed_chunks)} failed: {failed})"
    if cancelled:
        reasoning += f"; cancelled after {acc.chunks_seen} of {chunk_count} chunks"

    result = SceneExtractionResult(
        scenes=scenes,
        scene_count=len(scenes),
        reasoning=reasoning,
        chunk_count=chunk_count,
        failed_chunks=list(acc.failed_chunks),
    )
    logger.info("Total scenes extracted: %s from %s chunks", len(scenes), chunk_count)
    if result.partial or cancelled:
        logger.warning("Returning partial scene list: %s", reasoning)
    return result
