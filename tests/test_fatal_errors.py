"""Tests for errors that abort a dispatch instead of being aggregated.

This module tests:
- SystemExit / KeyboardInterrupt raised by a worker reach the caller
- Every entry operation returns promptly instead of hanging
- Thread start failures join the threads already running
"""

import sys
import threading
from typing import Any, Callable, Dict, List
from unittest.mock import patch

import pytest

from parfor import parallel_do, parallel_for, parallel_for_bounded, parallel_range_map

TIMEOUT_S = 10.0

_real_start = threading.Thread.start


class StopEverything(BaseException):
    """Non-Exception error raised by a worker."""


def run_with_timeout(call: Callable[[], Any]) -> Dict[str, Any]:
    """Run ``call`` in a daemon thread and fail the test if it never returns."""
    outcome: Dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["result"] = call()
        except BaseException as exc:
            outcome["error"] = exc

    runner = threading.Thread(target=target, name="dispatch-runner", daemon=True)
    runner.start()
    runner.join(TIMEOUT_S)
    assert not runner.is_alive(), "dispatch did not return"
    return outcome


def parfor_threads() -> List[threading.Thread]:
    return [t for t in threading.enumerate() if t.name.startswith("parfor-")]


def refuse_to_start(name: str) -> Callable[[threading.Thread], None]:
    def start(thread: threading.Thread) -> None:
        if thread.name == name:
            raise RuntimeError("can't start new thread")
        _real_start(thread)

    return start


def interrupt(*_: Any) -> None:
    raise KeyboardInterrupt


class TestWorkerAbort:
    """A worker raising outside Exception aborts the dispatch."""

    @pytest.mark.parametrize("backend", ["threads", "joblib"])
    def test_bounded_every_worker_exits(self, backend: str) -> None:
        outcome = run_with_timeout(
            lambda: parallel_for_bounded(0, 10, 1, 2, lambda i: sys.exit(1), backend=backend),
        )
        assert isinstance(outcome["error"], SystemExit)
        assert outcome["error"].code == 1
        assert parfor_threads() == []

    @pytest.mark.parametrize("backend", ["threads", "joblib"])
    def test_bounded_stops_invoking_after_abort(self, backend: str) -> None:
        calls: List[int] = []

        def worker(i: int) -> None:
            calls.append(i)
            if i == 3:
                raise StopEverything()

        outcome = run_with_timeout(
            lambda: parallel_for_bounded(0, 100, 1, 1, worker, backend=backend),
        )
        assert isinstance(outcome["error"], StopEverything)
        assert calls == [0, 1, 2, 3]

    def test_abort_wins_over_unit_failures(self) -> None:
        def worker(i: int) -> None:
            if i == 7:
                raise StopEverything()
            raise ValueError(i)

        outcome = run_with_timeout(lambda: parallel_for_bounded(0, 20, 1, 3, worker))
        assert isinstance(outcome["error"], StopEverything)
        assert "result" not in outcome

    def test_unbounded(self) -> None:
        outcome = run_with_timeout(
            lambda: parallel_for(0, 8, 1, lambda i: sys.exit(2) if i == 3 else None),
        )
        assert isinstance(outcome["error"], SystemExit)
        assert outcome["error"].code == 2
        assert parfor_threads() == []

    def test_fan_out(self) -> None:
        outcome = run_with_timeout(lambda: parallel_do(lambda: None, interrupt, lambda: None))
        assert isinstance(outcome["error"], KeyboardInterrupt)
        assert parfor_threads() == []

    def test_keyed(self) -> None:
        def worker(key: str, value: int) -> None:
            if key == "b":
                interrupt()

        outcome = run_with_timeout(lambda: parallel_range_map({"a": 1, "b": 2, "c": 3}, worker))
        assert isinstance(outcome["error"], KeyboardInterrupt)
        assert parfor_threads() == []


class TestThreadStartFailure:
    """A thread that cannot be started aborts the dispatch cleanly."""

    @pytest.mark.parametrize("refused", ["parfor-worker-2", "parfor-producer"])
    def test_bounded(self, refused: str) -> None:
        calls: List[int] = []

        def call() -> Any:
            with patch.object(
                threading.Thread,
                "start",
                autospec=True,
                side_effect=refuse_to_start(refused),
            ):
                return parallel_for_bounded(0, 20, 1, 4, calls.append)

        outcome = run_with_timeout(call)
        assert isinstance(outcome["error"], RuntimeError)
        assert "can't start new thread" in str(outcome["error"])
        # The producer starts last, so no unit was ever queued
        assert calls == []
        assert parfor_threads() == []

    def test_unbounded(self) -> None:
        calls: List[int] = []

        def call() -> Any:
            with patch.object(
                threading.Thread,
                "start",
                autospec=True,
                side_effect=refuse_to_start("parfor-unit-3"),
            ):
                return parallel_for(0, 6, 1, calls.append)

        outcome = run_with_timeout(call)
        assert isinstance(outcome["error"], RuntimeError)
        assert set(calls) <= {0, 1, 2}
        assert parfor_threads() == []

    def test_fan_out(self) -> None:
        def call() -> Any:
            with patch.object(
                threading.Thread,
                "start",
                autospec=True,
                side_effect=refuse_to_start("parfor-parallel_do-1"),
            ):
                return parallel_do(lambda: None, lambda: None, lambda: None)

        outcome = run_with_timeout(call)
        assert isinstance(outcome["error"], RuntimeError)
        assert parfor_threads() == []
