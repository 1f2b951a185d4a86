from __future__ import annotations

import threading
import time


class PipelineCancelled(RuntimeError):
    """Raised at a suspension point once the run has been cancelled."""


class CancelToken:
    """Cancellation and deadline signal shared by one pipeline invocation.

    Every suspension point (backoff sleeps, the inter-chunk pause and the
    timeout handed to each inference call) consults the same token.
    """

    def __init__(self, deadline_sec: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + deadline_sec if deadline_sec is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PipelineCancelled("Scene extraction cancelled")

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def clamp_timeout(self, timeout: float) -> float:
        remaining = self.remaining()
        if remaining is None:
            return timeout
        return min(timeout, remaining)

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        remaining = self.remaining()
        wait_for = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(wait_for)
        if remaining is not None and seconds > remaining:
            raise PipelineCancelled("Scene extraction deadline reached")
        self.raise_if_cancelled()
