"""
Historical pattern matching.

The catalog carries display statistics only; similarity comes from the
scorer registered for each pattern id, normalized by that scorer's
maximum attainable score.
"""

from typing import Callable, Mapping, Sequence

from src.core.negotiation.models import NegotiationStatus
from src.core.velocity.models import (
    CategoryWithTerms,
    HistoricalPattern,
    HistoricalPatternMatch,
    RiskFactor,
    VelocityMetrics,
)

MIN_PATTERN_SIMILARITY = 0.5

PatternScorer = Callable[
    [VelocityMetrics, Sequence[RiskFactor], Sequence[CategoryWithTerms]],
    tuple[float, float],
]


def default_pattern_catalog() -> list[HistoricalPattern]:
    return [
        HistoricalPattern(
            pattern_id="covenant-deadlock",
            pattern_name="Covenant Negotiation Deadlock",
            outcome_type="stalled_failed",
            historical_close_rate=0.45,
            average_recovery_days=8,
            key_characteristics=[
                "No progress on Financial Covenants for 5+ days",
                "Multiple rejected proposals on same term",
                "Reduced comment frequency",
            ],
        ),
        HistoricalPattern(
            pattern_id="pricing-standoff",
            pattern_name="Pricing Term Standoff",
            outcome_type="stalled_recovered",
            historical_close_rate=0.62,
            average_recovery_days=5,
            key_characteristics=[
                "Pricing terms under discussion for 7+ days",
                "Counter-proposals within narrow range",
                "Active comments but no agreements",
            ],
        ),
        HistoricalPattern(
            pattern_id="participant-dropout",
            pattern_name="Key Participant Disengagement",
            outcome_type="stalled_failed",
            historical_close_rate=0.38,
            average_recovery_days=12,
            key_characteristics=[
                "Deal lead inactive for 3+ days",
                "No response to proposals for 5+ days",
                "Engagement score dropped below 30",
            ],
        ),
        HistoricalPattern(
            pattern_id="velocity-decline",
            pattern_name="Gradual Velocity Decline",
            outcome_type="stalled_recovered",
            historical_close_rate=0.71,
            average_recovery_days=4,
            key_characteristics=[
                "Activity rate dropped 50%+ week over week",
                "Longer intervals between proposals",
                "Decreased participant engagement",
            ],
        ),
        HistoricalPattern(
            pattern_id="deadline-pressure",
            pattern_name="Pre-Deadline Stall",
            outcome_type="closed_successfully",
            historical_close_rate=0.78,
            average_recovery_days=2,
            key_characteristics=[
                "Target close date within 14 days",
                "Multiple terms still under discussion",
                "Recent burst of activity followed by pause",
            ],
        ),
        HistoricalPattern(
            pattern_id="momentum-loss",
            pattern_name="Post-Agreement Momentum Loss",
            outcome_type="stalled_recovered",
            historical_close_rate=0.68,
            average_recovery_days=6,
            key_characteristics=[
                "Strong initial progress (5+ agreements)",
                "Recent slowdown on remaining terms",
                "No new proposals in 3+ days",
            ],
        ),
    ]


def _has_factor(factors: Sequence[RiskFactor], factor_type: str) -> bool:
    return any(factor.factor_type == factor_type for factor in factors)


def _score_covenant_deadlock(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    if _has_factor(factors, "covenant_stalemate"):
        score += 1
    if _has_factor(factors, "proposal_rejection_streak"):
        score += 1
    if metrics.velocity_trend in ("decelerating", "stalled"):
        score += 1
    return score, 3.0


def _score_pricing_standoff(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    if _has_factor(factors, "pricing_deadlock"):
        score += 1.5
    if metrics.days_since_last_agreement >= 5:
        score += 1
    # Active discussion without progress.
    if metrics.comments_per_day > 1:
        score += 0.5
    return score, 3.0


def _score_participant_dropout(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    if _has_factor(factors, "unresponsive_party"):
        score += 1.5
    if _has_factor(factors, "low_engagement"):
        score += 1
    if metrics.participant_engagement_rate < 50:
        score += 0.5
    return score, 3.0


def _score_velocity_decline(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    if metrics.velocity_trend == "decelerating":
        score += 1.5
    if metrics.compared_to_historical_average < 0.7:
        score += 1
    if metrics.engagement_trend == "decreasing":
        score += 0.5
    return score, 3.0


def _score_deadline_pressure(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    if any(
        sum(1 for t in c.terms if t.negotiation_status == NegotiationStatus.UNDER_DISCUSSION) >= 2
        for c in categories
    ):
        score += 1.5
    if metrics.days_since_last_activity >= 2:
        score += 1
    if metrics.velocity_trend == "decelerating":
        score += 0.5
    return score, 3.0


def _score_momentum_loss(
    metrics: VelocityMetrics,
    factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> tuple[float, float]:
    score = 0.0
    agreed_terms = sum(
        1 for c in categories for t in c.terms if t.negotiation_status == NegotiationStatus.AGREED
    )
    if agreed_terms >= 5:
        score += 1
    if metrics.days_since_last_proposal >= 3:
        score += 1
    if metrics.velocity_trend != "accelerating":
        score += 1
    return score, 3.0


PATTERN_SCORERS: Mapping[str, PatternScorer] = {
    "covenant-deadlock": _score_covenant_deadlock,
    "pricing-standoff": _score_pricing_standoff,
    "participant-dropout": _score_participant_dropout,
    "velocity-decline": _score_velocity_decline,
    "deadline-pressure": _score_deadline_pressure,
    "momentum-loss": _score_momentum_loss,
}


def pattern_similarity(
    pattern: HistoricalPattern,
    metrics: VelocityMetrics,
    risk_factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
) -> float:
    scorer = PATTERN_SCORERS.get(pattern.pattern_id)
    if scorer is None:
        return 0.0
    match_score, max_score = scorer(metrics, risk_factors, categories)
    return match_score / max_score if max_score > 0 else 0.0


def match_historical_patterns(
    metrics: VelocityMetrics,
    risk_factors: Sequence[RiskFactor],
    categories: Sequence[CategoryWithTerms],
    *,
    catalog: Sequence[HistoricalPattern],
) -> list[HistoricalPatternMatch]:
    matches = []
    for pattern in catalog:
        similarity = pattern_similarity(pattern, metrics, risk_factors, categories)
        if similarity >= MIN_PATTERN_SIMILARITY:
            matches.append(
                HistoricalPatternMatch(similarity=similarity, **pattern.model_dump())
            )
    return sorted(matches, key=lambda match: -match.similarity)
