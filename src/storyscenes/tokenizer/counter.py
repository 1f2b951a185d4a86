from __future__ import annotations

import logging
import re
from typing import Any, Protocol

import tiktoken

logger = logging.getLogger(__name__)

PARAGRAPH_PATTERN = re.compile(r".*?(?:\n[ \t]*\n\s*|\Z)", re.DOTALL)
SENTENCE_PATTERN = re.compile(r"[^.!?]*(?:[.!?]+[\"'”’)\]]*\s*|\Z)")
WORD_PATTERN = re.compile(r"\s*\S+\s*")


class TokenizerResourceError(RuntimeError):
    """Raised when the tokenizer cannot be acquired or is used after release."""


class Tokenizer(Protocol):
    def count_tokens(self, text: str) -> int: ...

    def chunk_text(self, text: str, max_tokens_per_chunk: int) -> list[str]: ...

    def free(self) -> None: ...


class StoryTokenizer:
    """tiktoken-backed counter that splits stories on natural boundaries."""

    def __init__(self, encoding_name: str = "cl100k_base", encoding: Any | None = None) -> None:
        self.encoding_name = encoding_name
        if encoding is None:
            try:
                encoding = tiktoken.get_encoding(encoding_name)
            except Exception as exc:
                raise TokenizerResourceError(
                    f"Unable to load tokenizer encoding '{encoding_name}'"
                ) from exc
        self._encoding = encoding

    def __enter__(self) -> "StoryTokenizer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.free()

    @property
    def released(self) -> bool:
        return self._encoding is None

    def free(self) -> None:
        if self._encoding is not None:
            logger.debug("Releasing tokenizer encoding %s", self.encoding_name)
        self._encoding = None

    def count_tokens(self, text: str) -> int:
        return len(self._require_encoding().encode(text))

    def chunk_text(self, text: str, max_tokens_per_chunk: int) -> list[str]:
        if max_tokens_per_chunk < 1:
            raise ValueError("max_tokens_per_chunk must be positive")
        units = self._split_units(text, max_tokens_per_chunk)
        return self._pack_units(units, max_tokens_per_chunk)

    # Internal helpers -------------------------------------------------

    def _require_encoding(self) -> Any:
        if self._encoding is None:
            raise TokenizerResourceError("Tokenizer used after it was released")
        return self._encoding

    def _split_units(self, text: str, limit: int) -> list[str]:
        """Break text into the coarsest pieces that individually fit the limit."""
        units: list[str] = []
        for paragraph in _findall(PARAGRAPH_PATTERN, text):
            if self.count_tokens(paragraph) <= limit:
                units.append(paragraph)
                continue
            for sentence in _findall(SENTENCE_PATTERN, paragraph):
                if self.count_tokens(sentence) <= limit:
                    units.append(sentence)
                    continue
                for word in _findall(WORD_PATTERN, sentence):
                    if self.count_tokens(word) > limit:
                        logger.warning(
                            "Single word of %s tokens exceeds chunk limit %s; keeping it intact",
                            self.count_tokens(word),
                            limit,
                        )
                    units.append(word)
        return units

    def _pack_units(self, units: list[str], limit: int) -> list[str]:
        chunks: list[str] = []
        current = ""
        for unit in units:
            if not current:
                current = unit
                continue
            candidate = current + unit
            if self.count_tokens(candidate) <= limit:
                current = candidate
            else:
                chunks.append(current)
                current = unit
        if current:
            chunks.append(current)
        return chunks


def _findall(pattern: re.Pattern[str], text: str) -> list[str]:
    return [match.group(0) for match in pattern.finditer(text) if match.group(0)]
