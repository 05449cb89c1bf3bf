"""Unit sources: the sequences of work items a dispatcher consumes."""

from collections.abc import Mapping
from typing import Any, Callable, Hashable, List, Sequence, Tuple

from parfor.errors import NotAMapError, RangeError
from parfor.validation import FANOUT_WORKER, validate_worker


def check_range(low: int, high: int, step: int) -> None:
    """Raise RangeError unless ``low <= high`` and ``step > 0``."""
    if low > high:
        raise RangeError(f"low ({low}) > high ({high})")
    if step <= 0:
        raise RangeError(f"step ({step}) must be positive")


def check_parallelism(parallelism: int) -> None:
    """Raise RangeError unless ``parallelism`` is a positive int."""
    if isinstance(parallelism, bool) or not isinstance(parallelism, int):
        raise RangeError(f"parallelism must be an int, got {type(parallelism).__name__}")
    if parallelism <= 0:
        raise RangeError(f"parallelism ({parallelism}) must be positive")


def range_units(low: int, high: int, step: int) -> range:
    """Indices ``low, low+step, ...`` below ``high``.

    Raises:
        RangeError: on ``low > high`` or ``step <= 0``

    """
    check_range(low, high, step)
    return range(low, high, step)


def unit_count(low: int, high: int, step: int) -> int:
    """Number of units in ``range_units(low, high, step)``: ceil((high-low)/step)."""
    return len(range_units(low, high, step))


def map_units(collection: Any) -> List[Tuple[Hashable, Any]]:
    """Snapshot the ``(key, value)`` pairs of a mapping.

    Raises:
        NotAMapError: ``collection`` is not a Mapping

    """
    if not isinstance(collection, Mapping):
        raise NotAMapError(f"{collection!r} is not a map")
    return list(collection.items())


def callable_units(
    workers: Sequence[Any],
    *,
    name: str = "parallel_do",
) -> List[Callable[[], Any]]:
    """Validate every zero-argument callable before any of them runs.

    The first invalid callable aborts with its validator error; the message
    names its 1-based position.
    """
    return [
        validate_worker(worker, FANOUT_WORKER, name=f"the #{position} param of {name}")
        for position, worker in enumerate(workers, start=1)
    ]
