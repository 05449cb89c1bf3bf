"""Utility modules for parfor.
"""

from .logging_utils import get_logger, setup_logging
from .path_utils import get_config_path, get_project_root
from .resource_monitor import (
    calculate_optimal_workers,
    default_parallelism,
    get_system_info,
)
from .settings import (
    clear_settings_cache,
    get_logging_level,
    get_parallelism_settings,
    load_settings,
    reload_settings,
    validate_settings,
)

__all__ = [
    # Logging utilities
    "setup_logging",
    "get_logger",
    # Path utilities
    "get_project_root",
    "get_config_path",
    # Resource utilities
    "calculate_optimal_workers",
    "default_parallelism",
    "get_system_info",
    # Settings
    "load_settings",
    "reload_settings",
    "clear_settings_cache",
    "get_logging_level",
    "get_parallelism_settings",
    "validate_settings",
]
