"""Synchronization helpers shared by the dispatchers."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from parfor.utils.logging_utils import get_logger

logger = get_logger(__name__)


class CompletionBarrier:
    """Blocks the caller until a known number of workers called ``done()``."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError(f"count ({count}) must be >= 0")
        self._remaining = count
        self._cond = threading.Condition()

    @property
    def remaining(self) -> int:
        with self._cond:
            return self._remaining

    def done(self) -> None:
        with self._cond:
            if self._remaining == 0:
                raise RuntimeError("CompletionBarrier released more times than its count")
            self._remaining -= 1
            if self._remaining == 0:
                self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            self._cond.wait_for(lambda: self._remaining == 0)


class InFlightGauge:
    """Counts invocations currently running and remembers the peak."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.current = 0
        self.peak = 0

    def __enter__(self) -> "InFlightGauge":
        with self._lock:
            self.current += 1
            if self.current > self.peak:
                self.peak = self.current
        return self

    def __exit__(self, *exc_info: Any) -> None:
        with self._lock:
            self.current -= 1


class AbortSignal:
    """First exception that must abort a dispatch and reach the caller.

    Per-unit failures are values. Anything recorded here stops further units
    from being invoked and is re-raised in the calling thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self.error: Optional[BaseException] = None

    def record(self, error: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = error
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def reraise(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass
class DispatchStats:
    """Counters for one dispatch, filled in as it runs."""

    operation: str
    units: int = 0
    workers: int = 0
    failures: int = 0
    max_in_flight: int = 0
    started_at: float = field(default_factory=time.perf_counter)
    elapsed_s: float = 0.0

    def finish(self, failures: int, max_in_flight: int) -> "DispatchStats":
        self.failures = failures
        self.max_in_flight = max_in_flight
        self.elapsed_s = time.perf_counter() - self.started_at
        logger.debug(
            f"Dispatch complete | operation={self.operation}, units={self.units}, "
            f"workers={self.workers}, failures={self.failures}, "
            f"max_in_flight={self.max_in_flight}, elapsed={self.elapsed_s:.3f}s",
        )
        return self
