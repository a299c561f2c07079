"""Pytest configuration and shared fixtures for drivestress tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from drivestress.config.config import ENV_MAPPINGS, reset_config
from drivestress.models import StressConfig, WorkSpec
from drivestress.utils.logging_config import ROOT_LOGGER
from drivestress.utils.shutdown import clear_shutdown


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("slow", "marks tests as slow (deselect with '-m \"not slow\"')"),
        ("timeout", "marks tests with timeout requirements"),
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as stress loop tests"),
        ("disk", "marks tests as disk I/O tests"),
        ("config", "marks tests as configuration tests"),
        ("cli", "marks tests as CLI tests"),
        ("observability", "marks tests as logging tests"),
        ("chaos", "marks tests as chaos tests"),
        ("property", "marks tests as property-based tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path_factory):
    """Keep user config files and DRIVESTRESS_* variables out of the tests.

    The working directory and home directory both point at empty temporary
    directories, so the config search finds nothing unless a test creates it.
    """
    for env_name in ENV_MAPPINGS:
        monkeypatch.delenv(env_name, raising=False)
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Drop the global configuration and shutdown flag between tests."""
    reset_config()
    clear_shutdown()
    yield
    reset_config()
    clear_shutdown()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # setup_logging stops propagation, which would hide records from caplog
    project_logger = logging.getLogger(ROOT_LOGGER)
    project_logger.propagate = True
    project_logger.setLevel(logging.NOTSET)


@pytest.fixture
def stress_config(tmp_path) -> StressConfig:
    """Small, fast stress settings writing into a temporary directory."""
    return StressConfig(
        file_size_bytes=10 * 1024 + 100,
        chunk_size_kib=1,
        num_files=4,
        target_dir=str(tmp_path),
        failure_delay=0.0,
        max_iterations=1,
    )


def make_spec(
    path: Path,
    size: int = 4096 + 17,
    seed: int = 12345,
    chunk_size: int = 1024,
    worker_index: int = 0,
) -> WorkSpec:
    """Build a small ``WorkSpec`` for storage tests."""
    return WorkSpec(
        path=path,
        size=size,
        seed=seed,
        chunk_size=chunk_size,
        worker_index=worker_index,
    )
