from typing import Optional, Sequence

from src.core.negotiation.models import NegotiationStatus
from src.core.velocity.models import (
    CategoryWithTerms,
    DealBenchmark,
    NegotiationTerm,
    ParticipantEngagement,
    RiskFactor,
    RiskSeverity,
    VelocityMetrics,
)

SEVERITY_MULTIPLIER: dict[str, float] = {"high": 1.0, "medium": 0.6, "low": 0.3}

COVENANT_STALEMATE_CLOSE_RATE = 0.4


def severity_multiplier(severity: RiskSeverity) -> float:
    return SEVERITY_MULTIPLIER[severity]


def _under_discussion(term: NegotiationTerm) -> bool:
    return term.negotiation_status == NegotiationStatus.UNDER_DISCUSSION


def _find_category(
    categories: Sequence[CategoryWithTerms], keyword: str
) -> Optional[CategoryWithTerms]:
    return next((c for c in categories if keyword in c.name.lower()), None)


def _inactivity(metrics: VelocityMetrics, benchmark: DealBenchmark) -> list[RiskFactor]:
    days = metrics.days_since_last_activity
    if days >= benchmark.inactivity_critical_days:
        severity, weight, label, threshold = (
            "high",
            0.3,
            "critical",
            benchmark.inactivity_critical_days,
        )
    elif days >= benchmark.inactivity_warning_days:
        severity, weight, label, threshold = (
            "medium",
            0.15,
            "warning",
            benchmark.inactivity_warning_days,
        )
    else:
        return []
    return [
        RiskFactor(
            factor_type="inactivity_period",
            severity=severity,
            weight=weight,
            description=f"No activity for {days} days ({label} threshold: {threshold} days)",
            data_points={"daysSinceLastActivity": days, "threshold": threshold},
        )
    ]


def _low_engagement(
    metrics: VelocityMetrics, participants: Sequence[ParticipantEngagement]
) -> list[RiskFactor]:
    rate = metrics.participant_engagement_rate
    if rate >= 40:
        return []
    return [
        RiskFactor(
            factor_type="low_engagement",
            severity="high" if rate < 25 else "medium",
            weight=0.25 if rate < 25 else 0.15,
            description=f"Only {round(rate)}% of participants active in the last 7 days",
            data_points={
                "engagementRate": rate,
                "activeParticipants": sum(1 for p in participants if p.is_active),
                "totalParticipants": len(participants),
            },
        )
    ]


def _stuck_terms(categories: Sequence[CategoryWithTerms]) -> list[RiskFactor]:
    factors = []
    for category in categories:
        for term in category.terms:
            if not _under_discussion(term) or term.pending_proposals_count < 3:
                continue
            high = term.pending_proposals_count >= 5
            factors.append(
                RiskFactor(
                    factor_type="stuck_on_term",
                    severity="high" if high else "medium",
                    weight=0.2 if high else 0.1,
                    description=(
                        f'"{term.term_label}" has {term.pending_proposals_count} '
                        "pending proposals without resolution"
                    ),
                    related_term_id=term.id,
                    data_points={
                        "termLabel": term.term_label,
                        "category": category.name,
                        "pendingProposals": term.pending_proposals_count,
                        "commentsCount": term.comments_count,
                    },
                )
            )
    return factors


def _unresponsive_leads(participants: Sequence[ParticipantEngagement]) -> list[RiskFactor]:
    return [
        RiskFactor(
            factor_type="unresponsive_party",
            severity="high" if p.days_since_last_activity >= 5 else "medium",
            weight=0.25,
            description=(
                f'Deal lead "{p.party_name}" inactive for {p.days_since_last_activity} days'
            ),
            related_party_id=p.participant_id,
            data_points={
                "partyName": p.party_name,
                "partyType": p.party_type,
                "daysSinceLastActivity": p.days_since_last_activity,
                "engagementScore": p.engagement_score,
            },
        )
        for p in participants
        if p.deal_role == "deal_lead" and p.days_since_last_activity >= 3
    ]


def _covenant_stalemate(categories: Sequence[CategoryWithTerms]) -> list[RiskFactor]:
    category = _find_category(categories, "covenant")
    if category is None:
        return []
    stuck = [
        t for t in category.terms if _under_discussion(t) and t.pending_proposals_count >= 2
    ]
    if len(stuck) < 2:
        return []
    return [
        RiskFactor(
            factor_type="covenant_stalemate",
            severity="high",
            weight=0.25,
            description=(
                f"{len(stuck)} covenant terms stuck in negotiation - historically a "
                f"{round(COVENANT_STALEMATE_CLOSE_RATE * 100)}% close rate in similar situations"
            ),
            data_points={
                "stuckTerms": [t.term_label for t in stuck],
                "historicalCloseRate": COVENANT_STALEMATE_CLOSE_RATE,
            },
        )
    ]


def _pricing_deadlock(
    metrics: VelocityMetrics, categories: Sequence[CategoryWithTerms]
) -> list[RiskFactor]:
    category = _find_category(categories, "pricing")
    if category is None:
        return []
    stuck = [t for t in category.terms if _under_discussion(t)]
    if not stuck or metrics.days_since_last_agreement < 5:
        return []
    return [
        RiskFactor(
            factor_type="pricing_deadlock",
            severity="medium",
            weight=0.15,
            description=(
                "Pricing terms under discussion for extended period with no recent agreements"
            ),
            data_points={
                "stuckTerms": [t.term_label for t in stuck],
                "daysSinceLastAgreement": metrics.days_since_last_agreement,
            },
        )
    ]


def _rejection_streak(metrics: VelocityMetrics) -> list[RiskFactor]:
    if metrics.response_rate_to_proposals >= 50 or metrics.days_since_last_agreement < 5:
        return []
    return [
        RiskFactor(
            factor_type="proposal_rejection_streak",
            severity="medium",
            weight=0.15,
            description=(
                f"Low proposal acceptance rate ({round(metrics.response_rate_to_proposals)}%) "
                "combined with no recent agreements"
            ),
            data_points={
                "responseRate": metrics.response_rate_to_proposals,
                "daysSinceLastAgreement": metrics.days_since_last_agreement,
            },
        )
    ]


def _velocity_decline(metrics: VelocityMetrics) -> list[RiskFactor]:
    trend = metrics.velocity_trend
    if trend not in ("decelerating", "stalled"):
        return []
    # Reported as inactivity_period alongside the recency check; both may fire.
    return [
        RiskFactor(
            factor_type="inactivity_period",
            severity="high" if trend == "stalled" else "medium",
            weight=0.2 if trend == "stalled" else 0.1,
            description=(
                f"Deal velocity is {trend} - currently at "
                f"{round(metrics.compared_to_historical_average * 100)}% of historical average"
            ),
            data_points={
                "velocityTrend": trend,
                "comparedToHistorical": metrics.compared_to_historical_average,
                "proposalsPerDay": metrics.proposals_per_day,
            },
        )
    ]


def detect_risk_factors(
    metrics: VelocityMetrics,
    participants: Sequence[ParticipantEngagement],
    categories: Sequence[CategoryWithTerms],
    benchmark: DealBenchmark,
) -> list[RiskFactor]:
    """Evaluate every detector in fixed order; factors are never merged."""
    return [
        *_inactivity(metrics, benchmark),
        *_low_engagement(metrics, participants),
        *_stuck_terms(categories),
        *_unresponsive_leads(participants),
        *_covenant_stalemate(categories),
        *_pricing_deadlock(metrics, categories),
        *_rejection_streak(metrics),
        *_velocity_decline(metrics),
    ]
