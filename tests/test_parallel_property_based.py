"""Property-based tests for dispatch invariants using Hypothesis."""

import threading
from typing import List, Optional

import pytest
from hypothesis import given, settings, strategies as st

from parfor import RangeError, parallel_for, parallel_for_bounded, parallel_range_map


class TestDispatchPropertyBased:
    """Exactly-once invocation and faithful error aggregation."""

    @pytest.mark.hypothesis
    @given(
        low=st.integers(min_value=-50, max_value=50),
        span=st.integers(min_value=0, max_value=120),
        step=st.integers(min_value=1, max_value=9),
        parallelism=st.integers(min_value=1, max_value=16),
    )
    @settings(max_examples=40, deadline=None)
    def test_bounded_exactly_once(self, low: int, span: int, step: int, parallelism: int) -> None:
        """Each value of the sequence is visited once, whatever the bound."""
        high = low + span
        expected = -(-span // step)
        counts = [0] * expected
        lock = threading.Lock()

        def worker(i: int) -> None:
            with lock:
                counts[(i - low) // step] += 1

        assert parallel_for_bounded(low, high, step, parallelism, worker) is None
        assert counts == [1] * expected

    @pytest.mark.hypothesis
    @given(
        failing=st.sets(st.integers(min_value=0, max_value=59)),
        parallelism=st.integers(min_value=1, max_value=8),
    )
    @settings(max_examples=30, deadline=None)
    def test_failure_lines_match_failing_units(self, failing: set, parallelism: int) -> None:
        """k failing units give exactly k lines, set-equal to their messages."""

        def worker(i: int) -> Optional[Exception]:
            return ValueError(f"unit-{i}") if i in failing else None

        result = parallel_for_bounded(0, 60, 1, parallelism, worker)
        if not failing:
            assert result is None
        else:
            assert result is not None
            lines = str(result).splitlines()
            assert len(lines) == len(failing)
            assert set(lines) == {f"unit-{i}" for i in failing}

    @pytest.mark.hypothesis
    @given(
        low=st.integers(min_value=-20, max_value=20),
        drop=st.integers(min_value=1, max_value=20),
        step=st.integers(min_value=-3, max_value=5),
    )
    @settings(max_examples=30, deadline=None)
    def test_bad_ranges_run_nothing(self, low: int, drop: int, step: int) -> None:
        calls: List[int] = []
        high = low - drop if step > 0 else low + drop
        with pytest.raises(RangeError):
            parallel_for_bounded(low, high, step, 2, calls.append)
        with pytest.raises(RangeError):
            parallel_for(low, high, step, calls.append)
        assert calls == []

    @pytest.mark.hypothesis
    @given(data=st.dictionaries(st.text(max_size=8), st.integers(), max_size=30))
    @settings(max_examples=30, deadline=None)
    def test_range_map_visits_every_key(self, data: dict) -> None:
        seen: List[str] = []
        lock = threading.Lock()

        def worker(key: str, value: int) -> Optional[Exception]:
            with lock:
                seen.append(key)
            return ArithmeticError(key) if value < 0 else None

        result = parallel_range_map(data, worker)
        assert sorted(seen) == sorted(data)
        negative = {key for key, value in data.items() if value < 0}
        if negative:
            assert result is not None
            assert set(result.units) == negative
        else:
            assert result is None
