from __future__ import annotations

import pytest

from storyscenes.extraction.llm import LLMRequestError
from storyscenes.extraction.retry import (
    AttemptFailure,
    AttemptSuccess,
    RetryPolicy,
    backoff_delay,
)


class FlakyOperation:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.attempts: list[int] = []

    def __call__(self, attempt: int) -> str:
        self.attempts.append(attempt)
        if len(self.attempts) <= self.failures:
            raise LLMRequestError(f"failure {attempt}", status_code=503)
        return "scenes"


def test_backoff_doubles_from_one_second():
    assert [backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]
    assert backoff_delay(3, base_delay=0.5) == 2.0


def test_backoff_rejects_attempt_zero():
    with pytest.raises(ValueError):
        backoff_delay(0)


def test_first_attempt_success_does_not_sleep():
    sleeps: list[float] = []
    result = RetryPolicy().run(FlakyOperation(0), sleep=sleeps.append)

    assert result == AttemptSuccess(value="scenes", attempts=1)
    assert sleeps == []


def test_succeeds_on_third_attempt_after_backoff():
    sleeps: list[float] = []
    operation = FlakyOperation(2)

    result = RetryPolicy(max_attempts=3).run(operation, sleep=sleeps.append)

    assert isinstance(result, AttemptSuccess)
    assert result.attempts == 3
    assert operation.attempts == [1, 2, 3]
    assert sleeps == [1.0, 2.0]


def test_exhaustion_returns_failure_value():
    sleeps: list[float] = []

    result = RetryPolicy(max_attempts=3).run(FlakyOperation(10), sleep=sleeps.append)

    assert isinstance(result, AttemptFailure)
    assert result.attempts == 3
    assert str(result.error) == "failure 3"
    assert sleeps == [1.0, 2.0]


def test_longer_policies_keep_doubling():
    sleeps: list[float] = []
    RetryPolicy(max_attempts=4).run(FlakyOperation(10), sleep=sleeps.append)
    assert sleeps == [1.0, 2.0, 4.0]


def test_unexpected_errors_propagate_without_retry():
    sleeps: list[float] = []

    def broken(attempt: int) -> str:
        raise KeyError("bug")

    with pytest.raises(KeyError):
        RetryPolicy().run(broken, sleep=sleeps.append)
    assert sleeps == []


def test_policy_requires_an_attempt():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_single_attempt_policy_fails_without_sleeping():
    sleeps: list[float] = []

    result = RetryPolicy(max_attempts=1).run(FlakyOperation(1), sleep=sleeps.append)

    assert isinstance(result, AttemptFailure)
    assert result.attempts == 1
    assert str(result.error) == "failure 1"
    assert sleeps == []
