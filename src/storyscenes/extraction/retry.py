from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from .llm import ExtractionAttemptError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 3


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Delay to wait after failed attempt number ``attempt`` (1s, 2s, 4s, ...)."""
    if attempt < 1:
        raise ValueError("attempt numbers start at 1")
    return base_delay * 2 ** (attempt - 1)


@dataclass(frozen=True)
class AttemptSuccess(Generic[T]):
    value: T
    attempts: int


@dataclass(frozen=True)
class AttemptFailure:
    error: ExtractionAttemptError
    attempts: int


AttemptResult = Union[AttemptSuccess[T], AttemptFailure]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = MAX_RETRIES
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base_delay)

    def run(
        self,
        operation: Callable[[int], T],
        *,
        sleep: Callable[[float], None] = time.sleep,
        label: str = "operation",
    ) -> AttemptResult[T]:
        """Call ``operation(attempt)`` until it succeeds or attempts run out.

        Only :class:`ExtractionAttemptError` counts as a failed attempt; any
        other exception, cancellation included, propagates to the caller.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return AttemptSuccess(value=operation(attempt), attempts=attempt)
            except ExtractionAttemptError as exc:
                if attempt >= self.max_attempts:
                    return AttemptFailure(error=exc, attempts=attempt)
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s failed (%s); retrying in %ss (attempt %s/%s)",
                    label,
                    exc,
                    delay,
                    attempt + 1,
                    self.max_attempts,
                )
                sleep(delay)
        raise RuntimeError(f"{label} made no attempts")
