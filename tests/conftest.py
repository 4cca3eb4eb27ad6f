"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Generator

import pytest
from _pytest.config import Config

from process_migrator.engine import TaskRunner
from process_migrator.utils.cancellation import CancellationToken
from process_migrator.utils.retry_manager import RetryConfig
from tests.utils.fake_repository import FakeRepository
from tests.utils.payload_factory import build_payload


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers",
        "integration: mark a test as an integration test against a live account",
    )


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean environment flag (true/false)."""
    val = os.environ.get(name, "true" if default else "false").strip().lower()
    return val in {"1", "true", "yes", "on"}


def pytest_collection_modifyitems(config: Config, items: list[pytest.Item]) -> None:
    """Apply default skipping for non-unit tests.

    - Integration tests are skipped unless PROCESS_MIGRATOR_RUN_INTEGRATION is true.
    - Unmarked tests are skipped unless PROCESS_MIGRATOR_RUN_ALL_TESTS is true.
    """
    run_all = _env_flag("PROCESS_MIGRATOR_RUN_ALL_TESTS", False)
    run_integration = _env_flag("PROCESS_MIGRATOR_RUN_INTEGRATION", False) or run_all

    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled by default. Set PROCESS_MIGRATOR_RUN_INTEGRATION=true to enable.",
    )
    skip_unmarked = pytest.mark.skip(
        reason="Unmarked test skipped by default. Mark with unit/integration or set PROCESS_MIGRATOR_RUN_ALL_TESTS=true.",
    )

    for item in items:
        kws = item.keywords
        if "integration" in kws and not run_integration:
            item.add_marker(skip_integration)
            continue
        if not run_all and not any(m in kws for m in ("unit", "integration")):
            item.add_marker(skip_unmarked)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep PROCESS_MIGRATOR_* variables of the developer shell out of tests."""
    for name in list(os.environ):
        if name.startswith("PROCESS_MIGRATOR_") and not name.startswith("PROCESS_MIGRATOR_RUN_"):
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the retry manager, recorded instead of slept."""
    return []


@pytest.fixture
def runner(sleeps: list[float]) -> TaskRunner:
    """Task runner with retries enabled and no real waiting."""
    return TaskRunner(
        CancellationToken(),
        RetryConfig(max_retries=2, base_delay=0.01, jitter=False),
        sleep=sleeps.append,
    )


@pytest.fixture
def repository() -> FakeRepository:
    """Empty in-memory destination account."""
    return FakeRepository()


@pytest.fixture
def payload():
    """A small derived process with one custom and one inherited work item type."""
    return build_payload()
