import os
from typing import Optional

from src.core.velocity.benchmarks import default_deal_benchmark, parse_benchmark_catalog
from src.core.velocity.models import DealBenchmark, HistoricalPattern
from src.core.velocity.patterns import default_pattern_catalog


class DealBenchmarkNotFoundError(Exception):
    pass


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def velocity_apis_enabled() -> bool:
    return env_flag("DEAL_VELOCITY_APIS_ENABLED", True)


def load_benchmark_catalog() -> dict[str, DealBenchmark]:
    return parse_benchmark_catalog(os.getenv("DEAL_BENCHMARK_CATALOG_JSON"))


def default_benchmark_id() -> Optional[str]:
    value = os.getenv("DEAL_BENCHMARK_DEFAULT_ID", "").strip()
    return value or None


def resolve_benchmark(
    *,
    benchmark_id: Optional[str],
    inline_benchmark: Optional[DealBenchmark],
) -> DealBenchmark:
    if inline_benchmark is not None:
        return inline_benchmark

    catalog = load_benchmark_catalog()
    if benchmark_id is not None:
        selected = catalog.get(benchmark_id.strip())
        if selected is None:
            raise DealBenchmarkNotFoundError("DEAL_BENCHMARK_NOT_FOUND")
        return selected

    configured_default = default_benchmark_id()
    if configured_default is not None and configured_default in catalog:
        return catalog[configured_default]
    return default_deal_benchmark()


def resolve_pattern_catalog() -> list[HistoricalPattern]:
    return default_pattern_catalog()
