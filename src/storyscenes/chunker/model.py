from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class Chunk(BaseModel):
    index: int = Field(ge=0)
    text: str
    token_count: int
    start_time_sec: float = Field(default=0.0)
    duration_sec: float = Field(default=0.0)

    @property
    def end_time_sec(self) -> float:
        return self.start_time_sec + self.duration_sec


class ChunkPlan(BaseModel):
    single_shot: bool
    total_tokens: int
    token_budget: int
    total_duration_sec: float
    chunks: List[Chunk] = Field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)
