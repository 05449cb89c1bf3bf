"""joblib-backed bounded dispatcher.

``joblib.Parallel`` with the threading backend plays the same roles as the
native ``BoundedDispatcher``: it pulls units lazily from the generator
(``pre_dispatch`` bounds how far ahead it reads), runs them on ``n_jobs``
threads, and hands results back in completion order so the collector sees
failures in arrival order.
"""

import itertools
from collections.abc import Iterable
from typing import Any, Callable, Optional, Tuple

from joblib import Parallel, delayed

from parfor.collector import ErrorCollector
from parfor.errors import AggregatedError
from parfor.sources import check_parallelism
from parfor.sync import AbortSignal, DispatchStats, InFlightGauge
from parfor.utils.logging_utils import get_logger
from parfor.validation import invoke_unit

logger = get_logger(__name__)

# Marks a unit that was not invoked because the dispatch is aborting
_SKIPPED = object()


class JoblibDispatcher:
    """Bounded dispatch on ``joblib.Parallel(backend="threading")``."""

    def __init__(
        self,
        parallelism: int,
        operation: str = "parallel_for_bounded",
        pre_dispatch: str = "2*n_jobs",
    ):
        check_parallelism(parallelism)
        self.parallelism = parallelism
        self.operation = operation
        self.pre_dispatch = pre_dispatch
        self.stats: Optional[DispatchStats] = None

    @property
    def workers(self) -> int:
        return self.parallelism

    def run(
        self,
        units: Iterable[int],
        worker: Callable[[int], Any],
    ) -> Optional[AggregatedError]:
        stats = DispatchStats(operation=self.operation, workers=self.parallelism)
        self.stats = stats
        gauge = InFlightGauge()
        abort = AbortSignal()

        def invoke(unit: int) -> Tuple[int, Any]:
            if abort.is_set():
                return unit, _SKIPPED
            try:
                with gauge:
                    return unit, invoke_unit(worker, unit)
            except BaseException as exc:
                # Remaining units drain without running; the caller re-raises
                abort.record(exc)
                return unit, _SKIPPED

        logger.debug(
            f"Executing {self.operation} with joblib: n_jobs={self.parallelism}, "
            f"pre_dispatch={self.pre_dispatch}",
        )

        pending = itertools.takewhile(lambda _: not abort.is_set(), units)
        with ErrorCollector() as collector:
            with Parallel(
                n_jobs=self.parallelism,
                backend="threading",
                batch_size=1,
                pre_dispatch=self.pre_dispatch,
                return_as="generator_unordered",
            ) as parallel:
                for unit, error in parallel(delayed(invoke)(unit) for unit in pending):
                    if error is _SKIPPED:
                        continue
                    stats.units += 1
                    collector.report(unit, error)

        abort.reraise()
        stats.finish(len(collector.failures), gauge.peak)
        return collector.result()
