"""Entry operations.

Every entry function validates its inputs before any thread starts, runs
all units to completion, and returns ``None`` on success or an
``AggregatedError`` listing the failed units. Precondition violations are
raised, never returned.
"""

from typing import Any, Mapping, Optional, Tuple

from parfor.dispatch import BoundedDispatcher, SlotDispatcher, UnboundedDispatcher
from parfor.errors import AggregatedError
from parfor.joblib_backend import JoblibDispatcher
from parfor.protocols import DispatcherLike, FanOutWorker, IndexWorker, KeyedWorker
from parfor.sources import callable_units, check_parallelism, map_units, range_units
from parfor.utils.logging_utils import get_logger
from parfor.utils.settings import BACKENDS, get_parallelism_settings
from parfor.validation import INDEX_WORKER, KEYED_WORKER, validate_worker

logger = get_logger(__name__)


def select_backend(requested: Optional[str]) -> Tuple[str, str]:
    """Select the bounded-dispatch backend.

    An explicitly requested unknown backend is an error. An unknown value
    from settings or ``PARFOR_BACKEND`` is logged and replaced by the
    native ``threads`` backend.

    Args:
        requested: Backend name, or None to read ``parallelism.backend``

    Returns:
        Tuple of (chosen_backend, reason)

    Raises:
        ValueError: ``requested`` is not a known backend

    """
    if requested is not None:
        if requested not in BACKENDS:
            raise ValueError(f"Unknown backend {requested!r}; expected one of {BACKENDS}")
        return requested, "requested"

    configured = get_parallelism_settings().get("backend", "threads")
    if configured not in BACKENDS:
        logger.warning(
            f"Ignoring configured parallelism.backend={configured!r}; "
            f"expected one of {BACKENDS}, using 'threads'",
        )
        return "threads", "default"
    return configured, "settings"


def create_dispatcher(
    parallelism: int,
    backend: Optional[str] = None,
    operation: str = "parallel_for_bounded",
) -> DispatcherLike:
    """Create a bounded dispatcher for the given backend.

    Args:
        parallelism: Maximum invocations in flight
        backend: 'threads', 'joblib', or None for the configured default
        operation: Name used in logs

    Returns:
        Dispatcher instance

    """
    check_parallelism(parallelism)
    chosen, reason = select_backend(backend)
    logger.debug(
        f"Dispatcher selected | requested={backend}, chosen={chosen}, "
        f"reason={reason}, parallelism={parallelism}",
    )
    if chosen == "joblib":
        return JoblibDispatcher(parallelism, operation=operation)
    return BoundedDispatcher(parallelism, operation=operation)


def parallel_for(
    low: int,
    high: int,
    step: int,
    worker: IndexWorker,
) -> Optional[AggregatedError]:
    """Run ``worker(i)`` for ``i in range(low, high, step)``, one thread per i.

    Args:
        low: First index
        high: Exclusive upper bound
        step: Positive increment
        worker: Callable taking an int, returning None or an exception

    Returns:
        None if every call succeeded, otherwise the aggregated failure

    Raises:
        RangeError: ``low > high`` or ``step <= 0``
        InvalidWorkerError: malformed worker

    """
    units = range_units(low, high, step)
    validate_worker(worker, INDEX_WORKER, name="parallel_for worker")
    return UnboundedDispatcher().run(units, worker)


def parallel_for_bounded(
    low: int,
    high: int,
    step: int,
    parallelism: int,
    worker: IndexWorker,
    *,
    backend: Optional[str] = None,
) -> Optional[AggregatedError]:
    """Like parallel_for, with at most ``parallelism`` calls in flight.

    Raises:
        RangeError: bad range or ``parallelism <= 0``
        InvalidWorkerError: malformed worker
        ValueError: unknown backend

    """
    units = range_units(low, high, step)
    check_parallelism(parallelism)
    validate_worker(worker, INDEX_WORKER, name="parallel_for_bounded worker")
    dispatcher = create_dispatcher(parallelism, backend)
    if not units:
        return None
    return dispatcher.run(units, worker)


def parallel_do(*workers: FanOutWorker) -> Optional[AggregatedError]:
    """Run zero-argument callables concurrently.

    All callables are validated first; an invalid one aborts the call before
    any of them runs. Failures are keyed by 0-based position.
    """
    calls = callable_units(workers)
    return SlotDispatcher("parallel_do").run(
        [(position, fn, ()) for position, fn in enumerate(calls)],
    )


def parallel_range_map(
    collection: Mapping[Any, Any],
    worker: KeyedWorker[Any, Any],
) -> Optional[AggregatedError]:
    """Run ``worker(key, value)`` for every entry of ``collection`` concurrently.

    Raises:
        NotAMapError: ``collection`` is not a Mapping
        InvalidWorkerError: malformed worker

    """
    items = map_units(collection)
    validate_worker(worker, KEYED_WORKER, name="parallel_range_map worker")
    return SlotDispatcher("parallel_range_map").run(
        [(key, worker, (key, value)) for key, value in items],
    )
