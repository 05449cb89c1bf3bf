"""parfor: run independent units of work in parallel and collect their errors.

Entry operations:

- ``parallel_for(low, high, step, worker)``: one thread per index
- ``parallel_for_bounded(low, high, step, parallelism, worker)``: fixed pool
- ``parallel_do(*workers)``: fan-out of zero-argument callables
- ``parallel_range_map(mapping, worker)``: one thread per key

Each returns ``None`` when every unit succeeded, otherwise an
``AggregatedError`` whose text lists one failure per line.
"""

from .api import (
    create_dispatcher,
    parallel_do,
    parallel_for,
    parallel_for_bounded,
    parallel_range_map,
    select_backend,
)
from .errors import (
    AggregatedError,
    InvalidWorkerArity,
    InvalidWorkerError,
    InvalidWorkerKind,
    InvalidWorkerParamType,
    InvalidWorkerReturnType,
    NotAMapError,
    ParallelError,
    RangeError,
    UnitFailure,
    check,
)

__version__ = "0.1.0"

__all__ = [
    # Entry operations
    "parallel_for",
    "parallel_for_bounded",
    "parallel_do",
    "parallel_range_map",
    "create_dispatcher",
    "select_backend",
    "check",
    # Errors
    "ParallelError",
    "RangeError",
    "NotAMapError",
    "InvalidWorkerError",
    "InvalidWorkerKind",
    "InvalidWorkerArity",
    "InvalidWorkerParamType",
    "InvalidWorkerReturnType",
    "AggregatedError",
    "UnitFailure",
]
