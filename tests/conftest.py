"""
FILE: tests/conftest.py
Shared fixtures for negotiation engine tests.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.core.velocity import default_deal_benchmark, default_pattern_catalog


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if (
            _has_marker(item, "unit")
            or _has_marker(item, "integration")
            or _has_marker(item, "e2e")
        ):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        if "/tests/e2e/" in path:
            item.add_marker(pytest.mark.e2e)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def benchmark():
    return default_deal_benchmark()


@pytest.fixture
def pattern_catalog():
    return default_pattern_catalog()


@pytest.fixture(autouse=True)
def deal_runtime_env(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven configuration deterministic across tests."""

    monkeypatch.delenv("DEAL_BENCHMARK_CATALOG_JSON", raising=False)
    monkeypatch.delenv("DEAL_BENCHMARK_DEFAULT_ID", raising=False)
    monkeypatch.delenv("DEAL_VELOCITY_APIS_ENABLED", raising=False)
