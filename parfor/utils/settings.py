"""
Settings management for parfor.

This module provides centralized access to runtime settings with caching
and validation. Settings come from ``config/parfor.yaml`` merged over
built-in defaults; a couple of environment variables can override them.
"""

import copy
import functools
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from parfor.utils.logging_utils import get_logger
from parfor.utils.path_utils import get_config_path

__all__ = [
    "BACKENDS",
    "DEFAULTS",
    "LOG_LEVELS",
    "clear_settings_cache",
    "get_logging_level",
    "get_parallelism_settings",
    "load_settings",
    "reload_settings",
    "validate_settings",
]

logger = get_logger(__name__)

BACKENDS = ("threads", "joblib")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULTS: Dict[str, Any] = {
    "parallelism": {
        "backend": "threads",
        "workers": "auto",
    },
    "logging": {
        "level": "INFO",
    },
}


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in update.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


@functools.lru_cache(maxsize=4)
def _read_settings(config_path: Path) -> Dict[str, Any]:
    settings = copy.deepcopy(DEFAULTS)

    try:
        with open(config_path) as f:
            user_config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"Settings file not found: {config_path}. Using defaults.")
        return settings
    except yaml.YAMLError as e:
        logger.error(f"Invalid settings file {config_path}: {e}. Using defaults.")
        return settings

    if not isinstance(user_config, dict):
        logger.warning(
            f"Settings file {config_path} is not a mapping, got "
            f"{type(user_config).__name__}. Using defaults.",
        )
        return settings

    logger.debug(f"Settings loaded from {config_path}")
    return _deep_merge(settings, user_config)


def load_settings(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load settings from a YAML file with defaults.

    The parsed file is cached per resolved path; each call returns a fresh
    copy, so callers may modify the result. Use reload_settings() to pick up
    changes to the file.

    Args:
        path: Path to settings YAML file (None for get_config_path())

    Returns:
        Dictionary with settings (user config merged over defaults)

    """
    config_path = Path(path) if path is not None else get_config_path()
    return copy.deepcopy(_read_settings(config_path))


def clear_settings_cache() -> None:
    """Drop every cached settings file."""
    _read_settings.cache_clear()


def reload_settings(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Force reload settings from file (clears cache).

    Args:
        path: Path to settings YAML file

    Returns:
        Freshly loaded settings

    """
    clear_settings_cache()
    return load_settings(path)


def _section(settings: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = settings.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning(
            f"Ignoring '{name}' settings: expected a mapping, got {type(value).__name__}",
        )
        return {}
    return value


def get_parallelism_settings(settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Returns parallelism settings with env overrides applied.

    Precedence order: env > config > default

    Args:
        settings: Settings dict to use. If None, uses load_settings().

    Returns:
        Dict with ``backend`` and ``workers`` keys.

    """
    if settings is None:
        settings = load_settings()

    parallelism = {**DEFAULTS["parallelism"], **_section(settings, "parallelism")}

    env_backend = os.environ.get("PARFOR_BACKEND")
    if env_backend:
        parallelism["backend"] = env_backend.strip().lower()

    env_workers = os.environ.get("PARFOR_WORKERS")
    if env_workers:
        env_workers = env_workers.strip().lower()
        parallelism["workers"] = int(env_workers) if env_workers.isdigit() else env_workers

    return parallelism


def get_logging_level(settings: Optional[Dict[str, Any]] = None) -> str:
    """Returns the configured ``logging.level``, or INFO when it is not valid.

    Args:
        settings: Settings dict to use. If None, uses load_settings().

    Returns:
        Upper-case standard level name.

    """
    if settings is None:
        settings = load_settings()

    level = _section(settings, "logging").get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        logger.warning(f"Ignoring invalid logging.level={level!r}, using INFO")
        return "INFO"
    return level.upper()


def validate_settings(settings: Optional[Dict[str, Any]] = None) -> List[str]:
    """Returns list of validation warnings.

    Args:
        settings: Settings dict to validate. If None, uses load_settings().

    Returns:
        List of validation warning messages.

    """
    if settings is None:
        settings = load_settings()

    warnings = []
    for name in ("parallelism", "logging"):
        value = settings.get(name)
        if value is not None and not isinstance(value, dict):
            warnings.append(f"{name} must be a mapping, got {type(value).__name__}")

    parallelism = get_parallelism_settings(settings)

    backend = parallelism.get("backend")
    if backend not in BACKENDS:
        warnings.append(f"parallelism.backend must be one of {BACKENDS}, got {backend!r}")

    workers = parallelism.get("workers")
    if workers != "auto" and (
        isinstance(workers, bool) or not isinstance(workers, int) or workers < 1
    ):
        warnings.append(f"parallelism.workers must be 'auto' or int >= 1, got {workers!r}")

    logging_section = settings.get("logging")
    if isinstance(logging_section, dict):
        level = logging_section.get("level", "INFO")
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            warnings.append(f"logging.level must be a standard level name, got {level!r}")

    return warnings
