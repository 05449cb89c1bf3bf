from __future__ import annotations

import random

import pytest
from hypothesis import settings

from parfor.utils.settings import clear_settings_cache

# ---- Global configuration ----------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "hypothesis: property-based tests")
    config.option.xfail_strict = False


# ---- Deterministic Testing Configuration ---------------------

DETERMINISTIC_SEED = 42


@pytest.fixture(autouse=True)
def set_deterministic_seed():
    """Set deterministic seed for all tests"""
    random.seed(DETERMINISTIC_SEED)
    yield
    random.seed()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep env overrides and the settings cache from leaking between tests"""
    for var in ("PARFOR_BACKEND", "PARFOR_WORKERS", "PARFOR_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# Hypothesis settings for all property-based tests; thread-heavy, so fewer examples
settings.register_profile(
    "deterministic",
    deadline=None,
    max_examples=50,
    derandomize=False,
    database=None,
)
settings.load_profile("deterministic")
