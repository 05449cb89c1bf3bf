"""Error collection for parallel dispatches.

Two shapes are supported:

- ``ErrorCollector``: workers ``report()`` into an unbounded channel that a
  single collector thread drains while dispatch is still running, so a
  worker never waits on collection. Failures keep their arrival order.
- ``collect_slots``: one result slot per unit, written by exactly one
  worker, scanned after the completion barrier.
"""

import queue
import threading
from typing import Any, Hashable, List, Optional, Sequence

from parfor.errors import AggregatedError, UnitFailure
from parfor.utils.logging_utils import get_logger

logger = get_logger(__name__)

_CLOSED = object()


class ErrorCollector:
    """Channel plus collector thread that merges per-unit reports."""

    def __init__(self, name: str = "parfor-collector"):
        self._channel: "queue.SimpleQueue[Any]" = queue.SimpleQueue()
        self._failures: List[UnitFailure] = []
        self._reported = 0
        self._thread = threading.Thread(target=self._drain, name=name)

    def __enter__(self) -> "ErrorCollector":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def start(self) -> "ErrorCollector":
        self._thread.start()
        return self

    def report(self, unit: Hashable, error: Optional[BaseException]) -> None:
        """Record the outcome of one unit. Never blocks."""
        self._channel.put((unit, error))

    def _drain(self) -> None:
        while True:
            item = self._channel.get()
            if item is _CLOSED:
                return
            unit, error = item
            self._reported += 1
            if error is not None:
                logger.debug(f"Unit {unit!r} failed: {error}")
                self._failures.append(UnitFailure(unit, error))

    def close(self) -> None:
        """Stop accepting reports and wait for the channel to drain."""
        if not self._thread.is_alive():
            return
        self._channel.put(_CLOSED)
        self._thread.join()

    @property
    def reported(self) -> int:
        """Reports received so far, successes included."""
        return self._reported

    @property
    def failures(self) -> List[UnitFailure]:
        return list(self._failures)

    def result(self) -> Optional[AggregatedError]:
        """Aggregated failure in arrival order, or None if every unit succeeded."""
        if self._thread.is_alive():
            raise RuntimeError("ErrorCollector.result() called before close()")
        if not self._failures:
            return None
        return AggregatedError(self._failures)


def collect_slots(
    units: Sequence[Hashable],
    slots: Sequence[Optional[BaseException]],
) -> Optional[AggregatedError]:
    """Merge a filled slot array into an aggregated failure.

    Args:
        units: Unit identity per slot (key or position)
        slots: Error or None per slot, same length as ``units``

    Returns:
        None if every slot is None, otherwise the failures in slot order

    """
    if len(units) != len(slots):
        raise ValueError(f"{len(units)} units but {len(slots)} result slots")

    failures = [
        UnitFailure(unit, error) for unit, error in zip(units, slots) if error is not None
    ]
    if not failures:
        return None
    return AggregatedError(failures)
