"""Thread-based dispatchers.

Three engines share one protocol: units go to worker threads, each worker
invokes the validated callable once per unit, and outcomes flow to an
error collector while a completion barrier holds the caller.

- ``BoundedDispatcher``: a producer thread fills a bounded hand-off queue
  drained by a fixed pool of P workers.
- ``UnboundedDispatcher``: one thread per unit, no queue.
- ``SlotDispatcher``: one thread per unit, each writing its own result slot.

Exceptions outside ``Exception`` (SystemExit, KeyboardInterrupt) are not
per-unit failures. The first one raised by a worker or while starting
threads stops further invocations; the dispatch still joins every thread
it started and then re-raises it in the caller.
"""

import logging
import queue
import threading
from collections.abc import Iterable, Sized
from typing import Any, Callable, Hashable, List, Optional, Sequence, Tuple

from parfor.collector import ErrorCollector, collect_slots
from parfor.errors import AggregatedError
from parfor.sources import check_parallelism
from parfor.sync import AbortSignal, CompletionBarrier, DispatchStats, InFlightGauge
from parfor.utils.logging_utils import get_logger
from parfor.utils.resource_monitor import THREAD_WARNING_THRESHOLD, log_dispatch_resources
from parfor.validation import invoke_unit

logger = get_logger(__name__)

_CLOSED = object()

# (unit identity, callable, positional args)
SlotCall = Tuple[Hashable, Callable[..., Any], Tuple[Any, ...]]


def _monitor(worker_count: int, operation: str) -> None:
    if worker_count > THREAD_WARNING_THRESHOLD or logger.isEnabledFor(logging.DEBUG):
        log_dispatch_resources(worker_count, operation)


def _verify_reports(operation: str, expected: int, reported: int) -> None:
    if reported != expected:
        raise RuntimeError(
            f"{operation}: {expected} units dispatched but {reported} results reported",
        )


def _start_and_wait(
    threads: Sequence[threading.Thread],
    barrier: CompletionBarrier,
    abort: AbortSignal,
    on_abort: Optional[Callable[[List[threading.Thread]], None]] = None,
) -> None:
    """Start ``threads`` in order, wait on ``barrier`` and join them.

    If a thread cannot be started, or the wait is interrupted, the error is
    recorded on ``abort``, ``on_abort`` gets the threads already running so
    it can unblock them, and those threads are joined before re-raising.
    """
    started: List[threading.Thread] = []
    try:
        for thread in threads:
            thread.start()
            started.append(thread)
        barrier.wait()
    except BaseException as exc:
        abort.record(exc)
        logger.debug(f"Dispatch aborted while starting or waiting: {exc!r}")
        if on_abort is not None:
            on_abort(started)
        raise
    finally:
        for thread in started:
            thread.join()


class BoundedDispatcher:
    """Fixed pool of ``parallelism`` workers fed through a bounded queue."""

    def __init__(self, parallelism: int, operation: str = "parallel_for_bounded"):
        check_parallelism(parallelism)
        self.parallelism = parallelism
        self.operation = operation
        self.stats: Optional[DispatchStats] = None

    @property
    def workers(self) -> int:
        return self.parallelism

    def run(
        self,
        units: Iterable[int],
        worker: Callable[[int], Any],
    ) -> Optional[AggregatedError]:
        """Invoke ``worker`` once per unit with at most ``parallelism`` in flight.

        Args:
            units: Unit values; consumed once by the producer thread
            worker: Validated worker callable

        Returns:
            None if every unit succeeded, otherwise the aggregated failure

        Raises:
            BaseException: the first error raised by the unit source, or the
                first non-``Exception`` raised by the worker

        """
        total = len(units) if isinstance(units, Sized) else None
        if total == 0:
            return None

        # More workers than units would only idle on the queue
        pool_size = self.parallelism if total is None else min(self.parallelism, total)
        stats = DispatchStats(operation=self.operation, workers=pool_size)
        self.stats = stats
        _monitor(pool_size, self.operation)

        hand_off: "queue.Queue[Any]" = queue.Queue(maxsize=self.parallelism)
        barrier = CompletionBarrier(pool_size)
        gauge = InFlightGauge()
        abort = AbortSignal()
        # Queued units still run after the source fails
        source_errors: List[BaseException] = []

        def produce() -> None:
            try:
                for unit in units:
                    if abort.is_set():
                        break
                    hand_off.put(unit)
                    stats.units += 1
            except BaseException as exc:
                source_errors.append(exc)
            finally:
                for _ in range(pool_size):
                    hand_off.put(_CLOSED)

        def work() -> None:
            # Keeps draining after an abort so the producer never blocks on put()
            try:
                while True:
                    unit = hand_off.get()
                    if unit is _CLOSED:
                        return
                    if abort.is_set():
                        continue
                    try:
                        with gauge:
                            error = invoke_unit(worker, unit)
                    except BaseException as exc:
                        abort.record(exc)
                        continue
                    collector.report(unit, error)
            finally:
                barrier.done()

        def close_started(started: List[threading.Thread]) -> None:
            # The producer starts last; if it is not running, nothing else will
            # put sentinels for the workers that are.
            if producer not in started:
                for _ in started:
                    hand_off.put(_CLOSED)

        with ErrorCollector() as collector:
            threads = [
                threading.Thread(target=work, name=f"parfor-worker-{i}")
                for i in range(pool_size)
            ]
            producer = threading.Thread(target=produce, name="parfor-producer")
            threads.append(producer)
            _start_and_wait(threads, barrier, abort, on_abort=close_started)

        abort.reraise()
        if source_errors:
            raise source_errors[0]
        _verify_reports(self.operation, stats.units, collector.reported)
        stats.finish(len(collector.failures), gauge.peak)
        return collector.result()


class UnboundedDispatcher:
    """One thread per unit, all started immediately."""

    def __init__(self, operation: str = "parallel_for"):
        self.operation = operation
        self.stats: Optional[DispatchStats] = None

    @property
    def workers(self) -> int:
        return self.stats.workers if self.stats is not None else 0

    def run(
        self,
        units: Iterable[int],
        worker: Callable[[int], Any],
    ) -> Optional[AggregatedError]:
        units = list(units)
        if not units:
            return None

        stats = DispatchStats(operation=self.operation, units=len(units), workers=len(units))
        self.stats = stats
        _monitor(len(units), self.operation)

        barrier = CompletionBarrier(len(units))
        gauge = InFlightGauge()
        abort = AbortSignal()

        def work(unit: int) -> None:
            try:
                if abort.is_set():
                    return
                with gauge:
                    error = invoke_unit(worker, unit)
                collector.report(unit, error)
            except BaseException as exc:
                abort.record(exc)
            finally:
                barrier.done()

        with ErrorCollector() as collector:
            threads = [
                threading.Thread(target=work, args=(unit,), name=f"parfor-unit-{unit}")
                for unit in units
            ]
            _start_and_wait(threads, barrier, abort)

        abort.reraise()
        _verify_reports(self.operation, len(units), collector.reported)
        stats.finish(len(collector.failures), gauge.peak)
        return collector.result()


class SlotDispatcher:
    """One thread per call, each writing only its own pre-sized result slot."""

    def __init__(self, operation: str):
        self.operation = operation
        self.stats: Optional[DispatchStats] = None

    def run(self, calls: Sequence[SlotCall]) -> Optional[AggregatedError]:
        """Run every call concurrently and merge the non-None slots.

        Args:
            calls: ``(unit, callable, args)`` triples; ``unit`` labels the slot

        Returns:
            None if every call succeeded, otherwise failures in slot order

        """
        if not calls:
            return None

        stats = DispatchStats(operation=self.operation, units=len(calls), workers=len(calls))
        self.stats = stats
        _monitor(len(calls), self.operation)

        slots: List[Optional[BaseException]] = [None] * len(calls)
        barrier = CompletionBarrier(len(calls))
        gauge = InFlightGauge()
        abort = AbortSignal()

        def work(slot: int, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
            try:
                if abort.is_set():
                    return
                with gauge:
                    slots[slot] = invoke_unit(fn, *args)
            except BaseException as exc:
                abort.record(exc)
            finally:
                barrier.done()

        threads = [
            threading.Thread(
                target=work,
                args=(slot, fn, args),
                name=f"parfor-{self.operation}-{slot}",
            )
            for slot, (_, fn, args) in enumerate(calls)
        ]
        _start_and_wait(threads, barrier, abort)

        abort.reraise()
        result = collect_slots([unit for unit, _, _ in calls], slots)
        stats.finish(len(result) if result is not None else 0, gauge.peak)
        return result
