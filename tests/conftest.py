"""Shared fixtures: a clean profiler environment and captured loguru records."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from loguru import logger

from apm_profiler.env import ENV_VAR_PREFIXES

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Drop any profiler-related variable inherited from the test runner."""
    for key in list(os.environ):
        if key.startswith(ENV_VAR_PREFIXES) or key == "PROGRAMDATA":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test."""
    records = []
    logger.add(lambda message: records.append(message.record), level="TRACE")
    return records


@pytest.fixture
def manifest_path() -> Path:
    return FIXTURES_DIR / "integrations.yml"
