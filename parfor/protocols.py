"""Protocol definitions for parallel dispatch interfaces.

This module provides type-safe contracts for workers and dispatchers
without coupling to specific implementations.
"""

from collections.abc import Iterable
from typing import Any, Callable, Optional, Protocol, TypeVar

from parfor.errors import AggregatedError

K = TypeVar("K", contravariant=True)
V = TypeVar("V", contravariant=True)

# What a worker hands back: nothing, or the error it wants reported
WorkerResult = Optional[BaseException]


class IndexWorker(Protocol):
    """Worker for indexed iteration: receives one int index."""

    def __call__(self, index: int, /) -> WorkerResult:
        ...


class KeyedWorker(Protocol[K, V]):
    """Worker for keyed iteration: receives a key and its value."""

    def __call__(self, key: K, value: V, /) -> WorkerResult:
        ...


class FanOutWorker(Protocol):
    """Worker for fan-out: takes no arguments."""

    def __call__(self) -> WorkerResult:
        ...


class DispatcherLike(Protocol):
    """Protocol for engines that run an indexed worker over a unit sequence.

    This protocol allows different dispatch engines (the native thread pool,
    joblib, etc.) to be used interchangeably by the entry functions.
    """

    @property
    def workers(self) -> int:
        """Number of worker threads the dispatcher runs."""
        ...

    def run(
        self,
        units: Iterable[int],
        worker: Callable[[int], Any],
    ) -> Optional[AggregatedError]:
        """Invoke ``worker`` once per unit and aggregate the failures.

        Args:
            units: Unit values to dispatch
            worker: Validated worker callable

        Returns:
            None if every unit succeeded, otherwise the aggregated failure

        """
        ...
