import logging
import random
from datetime import datetime
from typing import Optional, Sequence

from src.core.velocity.metrics import resolve_now
from src.core.velocity.models import (
    CategoryWithTerms,
    DealBenchmark,
    HistoricalPattern,
    HistoricalPatternMatch,
    ParticipantEngagement,
    RiskFactor,
    RiskLevel,
    StallRiskAssessment,
    VelocityMetrics,
)
from src.core.velocity.patterns import match_historical_patterns
from src.core.velocity.risk_factors import detect_risk_factors, severity_multiplier

logger = logging.getLogger(__name__)

MAX_STALL_PROBABILITY = 0.95
MIN_CONFIDENCE = 0.6
MAX_CONFIDENCE = 0.95


def factor_score(risk_factors: Sequence[RiskFactor]) -> float:
    return sum(
        factor.weight * severity_multiplier(factor.severity) * 100 for factor in risk_factors
    )


def pattern_score(matched_patterns: Sequence[HistoricalPatternMatch]) -> float:
    if not matched_patterns:
        return 0.0
    top = matched_patterns[0]
    return top.similarity * (1 - top.historical_close_rate) * 50


def classify_risk_level(score: float) -> RiskLevel:
    if score >= 70:
        return "critical"
    if score >= 50:
        return "high"
    if score >= 30:
        return "medium"
    return "low"


def estimate_days_until_stall(
    metrics: VelocityMetrics,
    risk_level: RiskLevel,
    rng: random.Random,
) -> Optional[int]:
    if metrics.velocity_trend == "stalled":
        return 0
    if metrics.velocity_trend == "decelerating":
        return max(1, 7 - metrics.days_since_last_activity)
    if risk_level in ("high", "critical"):
        # Only the [3, 6] bound is meaningful; the draw itself is not.
        return rng.randint(3, 6)
    return None


def assessment_confidence(
    participant_count: int, category_count: int, risk_factor_count: int
) -> float:
    data_quality = min(
        1.0,
        participant_count / 3 * 0.3
        + category_count / 3 * 0.3
        + (0.4 if risk_factor_count > 0 else 0.2),
    )
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, MIN_CONFIDENCE + data_quality * 0.35))


def assess_stall_risk(
    deal_id: str,
    metrics: VelocityMetrics,
    participants: Sequence[ParticipantEngagement],
    categories: Sequence[CategoryWithTerms],
    benchmark: DealBenchmark,
    *,
    pattern_catalog: Sequence[HistoricalPattern],
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> StallRiskAssessment:
    risk_factors = detect_risk_factors(metrics, participants, categories, benchmark)
    matched_patterns = match_historical_patterns(
        metrics, risk_factors, categories, catalog=pattern_catalog
    )

    overall_risk_score = max(
        0.0, min(100.0, factor_score(risk_factors) + pattern_score(matched_patterns))
    )
    risk_level = classify_risk_level(overall_risk_score)

    assessment = StallRiskAssessment(
        deal_id=deal_id,
        assessment_date=resolve_now(now),
        overall_risk_score=overall_risk_score,
        risk_level=risk_level,
        probability_of_stall=min(MAX_STALL_PROBABILITY, overall_risk_score / 100),
        estimated_days_until_stall=estimate_days_until_stall(
            metrics, risk_level, rng or random.Random()
        ),
        risk_factors=risk_factors,
        matched_patterns=matched_patterns,
        confidence=assessment_confidence(len(participants), len(categories), len(risk_factors)),
    )
    logger.info(
        "stall_risk.assessed",
        extra={
            "extra_fields": {
                "deal_id": deal_id,
                "overall_risk_score": round(overall_risk_score, 2),
                "risk_level": risk_level,
                "risk_factor_count": len(risk_factors),
                "matched_pattern_count": len(matched_patterns),
            }
        },
    )
    return assessment
