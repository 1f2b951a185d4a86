from __future__ import annotations

import json
import re
from typing import Any, Callable, Sequence

from storyscenes.control import CancelToken
from storyscenes.extraction.llm import LLMClient, LLMRequestError

PART_PATTERN = re.compile(r"part (\d+) of (\d+)")


def scene(number: int, timestamp: float, text: str = "", emotion: str = "joyful") -> dict[str, Any]:
    return {
        "sceneNumber": number,
        "textSegment": text or f"segment {number}",
        "timestamp": timestamp,
        "illustrationPrompt": f"prompt {number}",
        "emotion": emotion,
        "importance": "major",
    }


def scene_json(*scenes: dict[str, Any]) -> str:
    return json.dumps({"scenes": list(scenes), "sceneCount": len(scenes), "reasoning": "test"})


class WordEncoding:
    """Stands in for a tiktoken encoding: one token per whitespace-delimited word."""

    def encode(self, text: str) -> list[str]:
        return text.split()


class FakeTokenizer:
    """Word-count tokenizer with optional pre-computed chunk slices."""

    def __init__(self, slices: Sequence[str] | None = None, counts: dict[str, int] | None = None) -> None:
        self.slices = list(slices or [])
        self.counts = counts or {}
        self.free_calls = 0
        self.chunk_calls: list[int] = []

    def count_tokens(self, text: str) -> int:
        if text in self.counts:
            return self.counts[text]
        return len(text.split())

    def chunk_text(self, text: str, max_tokens_per_chunk: int) -> list[str]:
        self.chunk_calls.append(max_tokens_per_chunk)
        return list(self.slices)

    def free(self) -> None:
        self.free_calls += 1


class ChunkScriptLLM(LLMClient):
    """Replays scripted responses per chunk; Exceptions in the script are raised."""

    def __init__(self, script: dict[int, list[Any]], full_story: list[Any] | None = None) -> None:
        self.script = {key: list(value) for key, value in script.items()}
        self.full_story = list(full_story or [])
        self.calls: list[tuple[int | None, dict[str, Any]]] = []

    def complete(self, prompt: str, **kwargs: Any) -> str:
        match = PART_PATTERN.search(prompt)
        part = int(match.group(1)) if match else None
        self.calls.append((part, kwargs))
        queue = self.script.get(part, []) if part is not None else self.full_story
        if not queue:
            raise LLMRequestError("no scripted response", status_code=500)
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def calls_for(self, part: int | None) -> int:
        return sum(1 for called_part, _ in self.calls if called_part == part)


class RecordingToken(CancelToken):
    """CancelToken whose sleeps are recorded instead of waited out."""

    def __init__(self, on_sleep: Callable[["RecordingToken", float], None] | None = None) -> None:
        super().__init__()
        self.sleeps: list[float] = []
        self._on_sleep = on_sleep

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        self.sleeps.append(seconds)
        if self._on_sleep:
            self._on_sleep(self, seconds)
        self.raise_if_cancelled()
