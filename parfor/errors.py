"""Error types raised and returned by parfor dispatches.

Precondition errors (bad range, not a mapping, malformed worker) are raised
before any unit runs. Per-unit failures are merged into a single
``AggregatedError`` that the entry functions return.
"""

from dataclasses import dataclass
from typing import Any, Hashable, Iterator, List, Optional, Sequence


class ParallelError(Exception):
    """Base class for every error defined by parfor."""


class RangeError(ParallelError, ValueError):
    """Invalid ``low``/``high``/``step`` or non-positive parallelism."""


class NotAMapError(ParallelError, TypeError):
    """parallel_range_map was given something that is not a mapping."""


class InvalidWorkerError(ParallelError, TypeError):
    """A worker callable does not have an acceptable shape."""


class InvalidWorkerKind(InvalidWorkerError):
    """The worker is not callable."""


class InvalidWorkerArity(InvalidWorkerError):
    """The worker does not take the expected number of arguments."""


class InvalidWorkerParamType(InvalidWorkerError):
    """A worker parameter is annotated with a type the unit value is not."""


class InvalidWorkerReturnType(InvalidWorkerError):
    """The worker returns something other than nothing or an exception."""


@dataclass(frozen=True)
class UnitFailure:
    """One failed unit: its identity (index, key or position) and its error."""

    unit: Hashable
    error: BaseException

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


class AggregatedError(ParallelError):
    """All per-unit failures of one dispatch.

    ``str()`` renders one failure message per line. ``failures`` keeps the
    structured ``(unit, error)`` pairs in the order the collector saw them.
    """

    def __init__(self, failures: Sequence[UnitFailure]):
        self.failures: List[UnitFailure] = list(failures)
        super().__init__(self.render())

    def render(self) -> str:
        return "\n".join(failure.message for failure in self.failures)

    @property
    def errors(self) -> List[BaseException]:
        return [failure.error for failure in self.failures]

    @property
    def units(self) -> List[Hashable]:
        return [failure.unit for failure in self.failures]

    def __len__(self) -> int:
        return len(self.failures)

    def __iter__(self) -> Iterator[UnitFailure]:
        return iter(self.failures)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"AggregatedError({len(self.failures)} failures)"

    def __reduce__(self) -> Any:
        return (type(self), (self.failures,))


def check(result: Optional[AggregatedError]) -> None:
    """Raise the aggregated failure returned by an entry function, if any."""
    if result is not None:
        raise result
