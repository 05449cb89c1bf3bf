"""Tests for resource monitoring functionality.

This module tests:
- System information gathering
- Default parallelism resolution
- Dispatch resource logging
"""

import logging
import os
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from parfor.utils.resource_monitor import (
    THREAD_WARNING_THRESHOLD,
    calculate_optimal_workers,
    default_parallelism,
    get_system_info,
    get_thread_usage,
    log_dispatch_resources,
)


def test_get_system_info() -> None:
    """Test system information gathering."""
    info = get_system_info()

    assert info["cpu_count"] > 0
    assert info["physical_cpu_count"] > 0
    assert info["total_memory_gb"] > 0
    assert 0 <= info["memory_percent"] <= 100


def test_get_thread_usage() -> None:
    usage = get_thread_usage()
    assert usage["process_threads"] >= 1
    assert usage["process_rss_gb"] > 0


def test_calculate_optimal_workers_requested() -> None:
    """Test requested worker counts are honoured and clamped to >= 1."""
    assert calculate_optimal_workers(requested_workers=4) == 4
    assert calculate_optimal_workers(requested_workers=100) == 100
    assert calculate_optimal_workers(requested_workers=0) == 1


@patch("parfor.utils.resource_monitor.psutil.virtual_memory")
def test_calculate_optimal_workers_auto(mock_virtual_memory: Any) -> None:
    """Test the auto formula with plenty of memory."""
    mock_memory = MagicMock()
    mock_memory.available = 16 * 1024**3
    mock_virtual_memory.return_value = mock_memory

    cpu_count = os.cpu_count() or 1
    assert calculate_optimal_workers() == max(1, min(32, cpu_count + 4))


@patch("parfor.utils.resource_monitor.psutil.virtual_memory")
def test_calculate_optimal_workers_low_memory(mock_virtual_memory: Any) -> None:
    mock_memory = MagicMock()
    mock_memory.available = 512 * 1024**2
    mock_virtual_memory.return_value = mock_memory

    assert calculate_optimal_workers() == (os.cpu_count() or 1)


@patch("parfor.utils.resource_monitor.psutil.virtual_memory", side_effect=OSError("no /proc"))
def test_calculate_optimal_workers_psutil_failure(mock_virtual_memory: Any) -> None:
    cpu_count = os.cpu_count() or 1
    assert calculate_optimal_workers() == max(1, min(32, cpu_count + 4))


class TestDefaultParallelism:
    """Resolution of parallelism.workers."""

    def test_explicit(self) -> None:
        assert default_parallelism({"parallelism": {"workers": 7}}) == 7

    @patch("parfor.utils.resource_monitor.calculate_optimal_workers", return_value=5)
    def test_auto(self, mock_calc: MagicMock) -> None:
        assert default_parallelism({"parallelism": {"workers": "auto"}}) == 5
        mock_calc.assert_called_once_with()

    @patch("parfor.utils.resource_monitor.calculate_optimal_workers", return_value=5)
    def test_invalid_falls_back_to_auto(self, mock_calc: MagicMock) -> None:
        assert default_parallelism({"parallelism": {"workers": -2}}) == 5

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PARFOR_WORKERS", "3")
        assert default_parallelism({}) == 3


def test_log_dispatch_resources(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="parfor.utils.resource_monitor"):
        log_dispatch_resources(4, "parallel_for")
    assert "Dispatch resources | operation=parallel_for, workers=4" in caplog.text


def test_log_dispatch_resources_warns_on_many_threads(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="parfor.utils.resource_monitor"):
        log_dispatch_resources(THREAD_WARNING_THRESHOLD + 1, "parallel_for")
    assert "consider parallel_for_bounded" in caplog.text
