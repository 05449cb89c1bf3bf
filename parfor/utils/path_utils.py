"""Path utilities for locating parfor configuration."""

import os
from pathlib import Path

CONFIG_ENV_VAR = "PARFOR_CONFIG"
CONFIG_FILENAME = "parfor.yaml"


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Path to the project root

    """
    return Path(__file__).parent.parent.parent


def get_config_path(filename: str = CONFIG_FILENAME) -> Path:
    """Get the path to a config file.

    The ``PARFOR_CONFIG`` environment variable wins when set. Otherwise the
    current directory and its parents are searched for ``config/<filename>``.
    The default name is parfor-specific so a host application's own
    ``config/settings.yaml`` is never picked up.

    Args:
        filename: Name of the config file (default: parfor.yaml)

    Returns:
        Path to the config file (may not exist)

    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)

    current = Path.cwd()
    for parent in [current] + list(current.parents):
        candidate = parent / "config" / filename
        if candidate.exists():
            return candidate

    # Fallback: the config directory shipped next to the package
    return get_project_root() / "config" / filename
