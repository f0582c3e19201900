import json
import logging
from typing import Optional

from pydantic import ValidationError

from src.core.velocity.models import CommonStallPoint, DealBenchmark, HealthyVelocityRange

logger = logging.getLogger(__name__)


def default_deal_benchmark() -> DealBenchmark:
    return DealBenchmark(
        deal_type="new_facility",
        deal_size="medium",
        complexity="medium",
        average_days_to_close=45,
        median_days_to_close=38,
        average_proposals_per_term=2.3,
        average_comments_per_term=4.5,
        healthy_velocity_range=HealthyVelocityRange(
            min_proposals_per_day=0.5,
            max_proposals_per_day=5,
            min_comments_per_day=1,
            max_comments_per_day=15,
        ),
        inactivity_warning_days=3,
        inactivity_critical_days=5,
        close_rate=0.72,
        common_stall_points=[
            CommonStallPoint(
                category="Financial Covenants", frequency=0.35, average_resolution_days=7
            ),
            CommonStallPoint(category="Pricing Terms", frequency=0.28, average_resolution_days=5),
            CommonStallPoint(
                category="Security Package", frequency=0.18, average_resolution_days=10
            ),
        ],
    )


def parse_benchmark_catalog(catalog_json: Optional[str]) -> dict[str, DealBenchmark]:
    normalized_json = (catalog_json or "").strip()
    if not normalized_json:
        return {}
    try:
        parsed = json.loads(normalized_json)
    except json.JSONDecodeError:
        logger.warning("deal_benchmark_catalog.invalid_json")
        return {}
    if not isinstance(parsed, dict):
        return {}

    catalog: dict[str, DealBenchmark] = {}
    for benchmark_id, payload in parsed.items():
        if not isinstance(payload, dict):
            continue
        normalized_id = benchmark_id.strip()
        if not normalized_id:
            continue
        try:
            catalog[normalized_id] = DealBenchmark.model_validate(payload)
        except ValidationError:
            logger.warning(
                "deal_benchmark_catalog.invalid_entry",
                extra={"extra_fields": {"benchmark_id": normalized_id}},
            )
    return catalog
