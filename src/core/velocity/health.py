from typing import Sequence

from src.core.velocity.alerts import URGENT_SEVERITIES, generate_alerts
from src.core.velocity.models import (
    CategoryWithTerms,
    DealAccelerationAlert,
    DealHealth,
    DealHealthSummary,
    ParticipantEngagement,
    StallRiskAssessment,
    VelocityMetrics,
)

MAX_PRIORITIES = 3
MAX_INDICATORS = 4
MAX_CONCERNS = 4


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def _urgent(alerts: Sequence[DealAccelerationAlert]) -> list[DealAccelerationAlert]:
    return [alert for alert in alerts if alert.severity in URGENT_SEVERITIES]


def classify_health(assessment: StallRiskAssessment) -> tuple[DealHealth, float]:
    score = assessment.overall_risk_score
    if assessment.risk_level == "critical":
        return "critical", max(0.0, 30 - score / 3)
    if assessment.risk_level in ("high", "medium"):
        return "at_risk", max(30.0, 70 - score / 2)
    return "healthy", max(70.0, 100 - score)


def executive_summary(
    deal_name: str,
    metrics: VelocityMetrics,
    assessment: StallRiskAssessment,
    alerts: Sequence[DealAccelerationAlert],
) -> str:
    urgent_count = len(_urgent(alerts))

    if assessment.risk_level == "critical":
        close_rate = (
            assessment.matched_patterns[0].historical_close_rate
            if assessment.matched_patterns
            else 0.5
        )
        return (
            f"{deal_name} requires immediate attention. Deal velocity has declined "
            f"significantly with {len(assessment.risk_factors)} risk factors identified. "
            f"{urgent_count} urgent {_plural(urgent_count, 'intervention', 'interventions')} "
            f"recommended. Historical patterns suggest a {round((1 - close_rate) * 100)}% "
            "probability of extended delays without action."
        )
    if assessment.risk_level == "high":
        days = metrics.days_since_last_activity
        return (
            f"{deal_name} is showing warning signs. {days} {_plural(days, 'day', 'days')} "
            f"since last activity with engagement at "
            f"{round(metrics.participant_engagement_rate)}%. Consider the {urgent_count} "
            f"suggested {_plural(urgent_count, 'intervention', 'interventions')} to maintain "
            "momentum."
        )
    if assessment.risk_level == "medium":
        return (
            f"{deal_name} is progressing with some areas requiring attention. Current "
            f"velocity is at {round(metrics.compared_to_historical_average * 100)}% of "
            f"historical average. {len(alerts)} optimization "
            f"{_plural(len(alerts), 'opportunity', 'opportunities')} identified."
        )
    completion = (
        f"Estimated {metrics.estimated_days_to_completion} days to completion based on "
        "current pace."
        if metrics.estimated_days_to_completion
        else "Maintain current momentum for optimal results."
    )
    return (
        f"{deal_name} is progressing well. Velocity metrics are healthy with "
        f"{round(metrics.participant_engagement_rate)}% participant engagement. {completion}"
    )


def top_priorities(
    alerts: Sequence[DealAccelerationAlert], assessment: StallRiskAssessment
) -> list[str]:
    priorities: list[str] = []
    for alert in _urgent(alerts)[:3]:
        primary = next((i for i in alert.interventions if i.priority == "primary"), None)
        if primary is not None:
            priorities.append(primary.title)
    for factor in [f for f in assessment.risk_factors if f.severity == "high"][:2]:
        label = factor.factor_type.replace("_", " ")
        if not any(label in priority.lower() for priority in priorities):
            priorities.append(f"Address {label}")
    return priorities[:MAX_PRIORITIES]


def positive_indicators(
    metrics: VelocityMetrics, participants: Sequence[ParticipantEngagement]
) -> list[str]:
    indicators = []
    if metrics.participant_engagement_rate >= 60:
        indicators.append(
            f"Strong participant engagement ({round(metrics.participant_engagement_rate)}%)"
        )
    if metrics.velocity_trend == "accelerating":
        indicators.append("Deal velocity is accelerating")
    elif metrics.velocity_trend == "stable" and metrics.compared_to_historical_average >= 0.8:
        indicators.append("Maintaining healthy negotiation pace")
    if metrics.response_rate_to_proposals >= 70:
        indicators.append(
            f"High proposal response rate ({round(metrics.response_rate_to_proposals)}%)"
        )
    if metrics.agreed_terms_per_day >= 0.3:
        indicators.append("Consistent progress on term agreements")
    active = sum(1 for p in participants if p.is_active)
    if active >= 3:
        indicators.append(f"{active} parties actively engaged")
    return indicators[:MAX_INDICATORS]


def concern_areas(metrics: VelocityMetrics, assessment: StallRiskAssessment) -> list[str]:
    concerns = [factor.description for factor in assessment.risk_factors[:3]]
    if metrics.compared_to_historical_average < 0.7:
        concerns.append(
            f"Deal velocity at {round(metrics.compared_to_historical_average * 100)}% "
            "of typical pace"
        )
    if assessment.matched_patterns and assessment.matched_patterns[0].similarity >= 0.6:
        top = assessment.matched_patterns[0]
        concerns.append(
            f'Pattern match: "{top.pattern_name}" ({round(top.similarity * 100)}% similarity)'
        )
    return concerns[:MAX_CONCERNS]


def build_deal_health_summary(
    deal_id: str,
    deal_name: str,
    metrics: VelocityMetrics,
    assessment: StallRiskAssessment,
    participants: Sequence[ParticipantEngagement],
    categories: Sequence[CategoryWithTerms],
) -> DealHealthSummary:
    overall_health, health_score = classify_health(assessment)
    alerts = generate_alerts(deal_id, assessment, metrics, participants, categories)
    return DealHealthSummary(
        deal_id=deal_id,
        deal_name=deal_name,
        overall_health=overall_health,
        health_score=health_score,
        velocity_metrics=metrics,
        stall_risk=assessment,
        participant_engagement=list(participants),
        active_alerts=alerts,
        executive_summary=executive_summary(deal_name, metrics, assessment, alerts),
        top_priorities=top_priorities(alerts, assessment),
        positive_indicators=positive_indicators(metrics, participants),
        concern_areas=concern_areas(metrics, assessment),
    )
