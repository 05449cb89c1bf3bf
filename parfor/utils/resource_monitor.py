"""Resource monitoring utilities for parfor.

This module provides CPU and memory snapshots used to pick a default
parallelism bound and to annotate debug logs of large dispatches.
"""

import os
from typing import Any, Dict, Optional

import psutil

from parfor.utils.logging_utils import get_logger
from parfor.utils.settings import get_parallelism_settings

logger = get_logger(__name__)

# Unbounded dispatches above this many threads get a warning
THREAD_WARNING_THRESHOLD = 1000


def get_system_info() -> dict[str, Any]:
    """Get basic system information."""
    info: dict[str, Any] = {
        "cpu_count": os.cpu_count() or 1,
        "physical_cpu_count": psutil.cpu_count(logical=False) or 1,
    }

    try:
        memory = psutil.virtual_memory()
        info.update(
            {
                "total_memory_gb": memory.total / (1024**3),
                "available_memory_gb": memory.available / (1024**3),
                "memory_percent": memory.percent,
            },
        )
    except OSError as e:
        logger.warning(f"Failed to get memory info with psutil: {e}")

    return info


def get_thread_usage() -> dict[str, Any]:
    """Get thread statistics for the current process."""
    process = psutil.Process()
    return {
        "process_threads": process.num_threads(),
        "process_rss_gb": process.memory_info().rss / (1024**3),
    }


def calculate_optimal_workers(requested_workers: Optional[int] = None) -> int:
    """Calculate a parallelism bound based on available CPUs.

    Args:
        requested_workers: User-requested worker count (None for auto)

    Returns:
        Positive number of workers

    """
    cpu_count = os.cpu_count() or 1

    if requested_workers is not None:
        optimal_workers = max(1, requested_workers)
        logger.debug(f"Using user-requested workers: {optimal_workers}")
        return optimal_workers

    # Threads mostly wait on I/O; leave headroom only on large machines
    default_workers = max(1, min(32, cpu_count + 4))

    try:
        available_gb = psutil.virtual_memory().available / (1024**3)
    except OSError as e:
        logger.warning(f"Failed to read available memory: {e}")
        return default_workers

    # Very small hosts: one worker per CPU keeps stack memory in check
    if available_gb < 1.0:
        default_workers = cpu_count

    logger.debug(
        f"Resource analysis: CPU={cpu_count}, "
        f"Available={available_gb:.1f}GB, Optimal={default_workers}",
    )
    return default_workers


def default_parallelism(settings: Optional[Dict[str, Any]] = None) -> int:
    """Resolve ``parallelism.workers`` from settings into a positive int.

    Args:
        settings: Settings dict to use. If None, uses load_settings().

    Returns:
        Parallelism bound suitable for parallel_for_bounded

    """
    workers = get_parallelism_settings(settings).get("workers", "auto")
    if workers == "auto" or workers is None:
        return calculate_optimal_workers()
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        logger.warning(f"Ignoring invalid parallelism.workers={workers!r}, using auto")
        return calculate_optimal_workers()
    return calculate_optimal_workers(workers)


def log_dispatch_resources(worker_count: int, operation_name: str) -> None:
    """Log a resource snapshot before a dispatch starts.

    Args:
        worker_count: Number of worker threads about to start
        operation_name: Name of the entry operation

    """
    info = get_system_info()
    usage = get_thread_usage()

    logger.debug(
        f"Dispatch resources | operation={operation_name}, workers={worker_count}, "
        f"cpu={info['cpu_count']}, threads_now={usage['process_threads']}, "
        f"rss={usage['process_rss_gb']:.2f}GB",
    )
    if worker_count > THREAD_WARNING_THRESHOLD:
        logger.warning(
            f"{operation_name} starts {worker_count} threads on "
            f"{info['cpu_count']} CPUs; consider parallel_for_bounded",
        )
