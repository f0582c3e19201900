"""Acceleration alerts built from a stall-risk assessment.

Each risk factor maps to at most one alert. The two strongest pattern matches
can add a pattern alert, and a healthy, nearly finished deal can add an
optimal-closing-window alert. Alerts are deduplicated on alert type and
category, keeping the first, then ordered by severity.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional, Sequence

from src.core.negotiation.models import NegotiationStatus
from src.core.velocity.models import (
    AlertCategory,
    AlertSeverity,
    CategoryWithTerms,
    DealAccelerationAlert,
    DealAlertType,
    HistoricalPatternMatch,
    InterventionPriority,
    InterventionType,
    ParticipantEngagement,
    RiskFactor,
    StallRiskAssessment,
    SuggestedIntervention,
    VelocityMetrics,
)

logger = logging.getLogger(__name__)

SEVERITY_ORDER: dict[str, int] = {"critical": 0, "urgent": 1, "warning": 2, "info": 3}
URGENT_SEVERITIES = ("critical", "urgent")

ALERT_TTL = timedelta(days=7)
OPPORTUNITY_TTL = timedelta(days=3)

PATTERN_ALERT_MIN_SIMILARITY = 0.65
PATTERN_ALERT_LIMIT = 2
DEFAULT_CLOSE_RATE = 0.72

CLOSING_WINDOW_MIN_PROGRESS = 70
CLOSING_WINDOW_MIN_ENGAGEMENT = 60
CLOSING_WINDOW_MIN_ACTIVE = 2
CLOSING_WINDOW_RISK_SCORE = 20
CLOSING_WINDOW_CLOSE_RATE = 0.85

_InterventionRow = tuple[InterventionType, InterventionPriority, str]


@dataclass(frozen=True)
class _AlertContext:
    assessment: StallRiskAssessment
    metrics: VelocityMetrics
    participants: Sequence[ParticipantEngagement]


@dataclass(frozen=True)
class FactorAlertRule:
    alert_type: DealAlertType
    category: AlertCategory
    severity_when_high: AlertSeverity
    severity_otherwise: AlertSeverity
    title: Callable[[RiskFactor], str]
    insight: Callable[[RiskFactor, _AlertContext], str]
    interventions: tuple[_InterventionRow, ...]


def _interventions(rows: Sequence[_InterventionRow]) -> list[SuggestedIntervention]:
    return [
        SuggestedIntervention(intervention_type=kind, priority=priority, title=title)
        for kind, priority, title in rows
    ]


def _inactivity_insight(factor: RiskFactor, ctx: _AlertContext) -> str:
    days = factor.data_points.get("daysSinceLastActivity", ctx.metrics.days_since_last_activity)
    top = ctx.assessment.matched_patterns[0] if ctx.assessment.matched_patterns else None
    lower_close = (1 - top.historical_close_rate if top else 0) or 0.6
    recovery = (top.average_recovery_days if top else None) or 5
    return (
        f"Similar deals that paused for {days} days had {round(lower_close * 100)}% lower "
        f"close rates. The average recovery time for deals at this stage is {recovery:g} "
        "days with proactive intervention."
    )


def _engagement_insight(factor: RiskFactor, ctx: _AlertContext) -> str:
    inactive = ", ".join(p.party_name for p in ctx.participants if not p.is_active)
    return (
        "When engagement drops below 40%, deals are 2.3x more likely to stall. Consider "
        f"reaching out to inactive parties: {inactive}"
    )


def _stuck_term_insight(factor: RiskFactor, ctx: _AlertContext) -> str:
    return (
        f"This term has {factor.data_points.get('pendingProposals', 0)} pending proposals. "
        "Deals with 3+ unresolved proposals on a single term typically require 7 additional "
        "days to close. Consider a package deal or escalation."
    )


def _unresponsive_insight(factor: RiskFactor, ctx: _AlertContext) -> str:
    return (
        f"When deal leads are inactive for {factor.data_points.get('daysSinceLastActivity')}+ "
        "days, 62% of deals experience significant delays. Direct outreach typically "
        "resolves this within 24-48 hours."
    )


def _static(text: str) -> Callable[[RiskFactor, _AlertContext], str]:
    return lambda factor, ctx: text


FACTOR_ALERT_RULES: dict[str, FactorAlertRule] = {
    "inactivity_period": FactorAlertRule(
        alert_type="overall_velocity_decline",
        category="velocity",
        severity_when_high="urgent",
        severity_otherwise="warning",
        title=lambda factor: "Deal Activity Has Stalled",
        insight=_inactivity_insight,
        interventions=(
            ("schedule_call", "primary", "Schedule Alignment Call"),
            ("send_summary", "secondary", "Send Progress Summary"),
            ("propose_package_deal", "alternative", "Propose Package Agreement"),
        ),
    ),
    "low_engagement": FactorAlertRule(
        alert_type="participant_disengagement",
        category="engagement",
        severity_when_high="urgent",
        severity_otherwise="warning",
        title=lambda factor: "Participant Engagement Dropping",
        insight=_engagement_insight,
        interventions=(
            ("schedule_call", "primary", "Individual Check-ins with Inactive Parties"),
            ("escalate_to_senior", "secondary", "Escalate to Senior Stakeholders"),
        ),
    ),
    "stuck_on_term": FactorAlertRule(
        alert_type="covenant_negotiation_pause",
        category="velocity",
        severity_when_high="urgent",
        severity_otherwise="warning",
        title=lambda factor: f'"{factor.data_points.get("termLabel", "")}" Negotiation Stuck',
        insight=_stuck_term_insight,
        interventions=(
            ("break_term_into_parts", "primary", "Break Term into Sub-Components"),
            ("offer_conditional_agreement", "secondary", "Propose Conditional Agreement"),
            ("schedule_call", "alternative", "Schedule Focused Discussion"),
        ),
    ),
    "unresponsive_party": FactorAlertRule(
        alert_type="party_response_delay",
        category="engagement",
        severity_when_high="critical",
        severity_otherwise="urgent",
        title=lambda factor: f'Key Party "{factor.data_points.get("partyName", "")}" Unresponsive',
        insight=_unresponsive_insight,
        interventions=(
            ("schedule_call", "primary", "Direct Outreach Call"),
            ("escalate_to_senior", "secondary", "Escalate Within Organization"),
        ),
    ),
    "covenant_stalemate": FactorAlertRule(
        alert_type="covenant_negotiation_pause",
        category="velocity",
        severity_when_high="urgent",
        severity_otherwise="urgent",
        title=lambda factor: "Covenant Terms at Stalemate",
        insight=_static(
            "Multiple covenant terms stuck in negotiation is a critical warning sign. Similar "
            "deals had only 40% close rates. Consider scheduling a call, proposing a package "
            "deal, or bringing in a senior stakeholder."
        ),
        interventions=(
            ("schedule_call", "primary", "Schedule Covenant Alignment Call"),
            ("propose_package_deal", "secondary", "Propose Covenant Package"),
            ("escalate_to_senior", "alternative", "Bring in Senior Credit Officers"),
        ),
    ),
    "pricing_deadlock": FactorAlertRule(
        alert_type="pricing_term_deadlock",
        category="velocity",
        severity_when_high="warning",
        severity_otherwise="warning",
        title=lambda factor: "Pricing Terms Under Extended Discussion",
        insight=_static(
            "Pricing negotiations lasting more than 5 days without progress indicate a "
            "possible value gap. Sharing market comparables or offering conditional terms "
            "often breaks the deadlock."
        ),
        interventions=(
            ("share_market_data", "primary", "Share Market Comparables"),
            ("offer_conditional_agreement", "secondary", "Propose Pricing Grid"),
        ),
    ),
    "proposal_rejection_streak": FactorAlertRule(
        alert_type="proposal_rejection_pattern",
        category="pattern",
        severity_when_high="warning",
        severity_otherwise="warning",
        title=lambda factor: "High Proposal Rejection Rate",
        insight=_static(
            "Low acceptance rates suggest misaligned expectations. Before the next proposal, "
            "consider a brief alignment call to understand priorities."
        ),
        interventions=(
            ("schedule_call", "primary", "Schedule Alignment Call"),
            ("add_mediator", "alternative", "Engage Neutral Mediator"),
        ),
    ),
}

PATTERN_INTERVENTIONS: tuple[_InterventionRow, ...] = (
    ("schedule_call", "primary", "Immediate Stakeholder Call"),
)
CLOSING_WINDOW_INTERVENTIONS: tuple[_InterventionRow, ...] = (
    ("schedule_call", "primary", "Schedule Final Terms Call"),
    ("propose_package_deal", "secondary", "Create Final Package Proposal"),
)


def _alert_id(deal_id: str, alert_type: str, category: str) -> str:
    return f"alert_{deal_id}_{alert_type}_{category}"


def _alert_from_factor(
    deal_id: str, factor: RiskFactor, ctx: _AlertContext
) -> Optional[DealAccelerationAlert]:
    rule = FACTOR_ALERT_RULES.get(factor.factor_type)
    if rule is None:
        return None
    assessment = ctx.assessment
    created_at = assessment.assessment_date
    top_close_rate = (
        assessment.matched_patterns[0].historical_close_rate if assessment.matched_patterns else 0
    )
    return DealAccelerationAlert(
        alert_id=_alert_id(deal_id, rule.alert_type, rule.category),
        deal_id=deal_id,
        created_at=created_at,
        expires_at=created_at + ALERT_TTL,
        severity=rule.severity_when_high if factor.severity == "high" else rule.severity_otherwise,
        category=rule.category,
        alert_type=rule.alert_type,
        title=rule.title(factor),
        description=factor.description,
        contextual_insight=rule.insight(factor, ctx),
        stall_risk_score=assessment.overall_risk_score,
        historical_close_rate=top_close_rate or DEFAULT_CLOSE_RATE,
        interventions=_interventions(rule.interventions),
    )


def _alert_from_pattern(
    deal_id: str, pattern: HistoricalPatternMatch, assessment: StallRiskAssessment
) -> Optional[DealAccelerationAlert]:
    if pattern.similarity < PATTERN_ALERT_MIN_SIMILARITY:
        return None
    close_percent = round(pattern.historical_close_rate * 100)
    insight = (
        f"Historically, deals matching this pattern had a {100 - close_percent}% failure "
        f"rate. However, with timely intervention, {close_percent}% still closed successfully."
    )
    if pattern.average_recovery_days is not None:
        insight += (
            f" Average recovery time is {pattern.average_recovery_days:g} days when action is "
            "taken promptly."
        )
    created_at = assessment.assessment_date
    return DealAccelerationAlert(
        alert_id=_alert_id(deal_id, "agreement_momentum_loss", "pattern"),
        deal_id=deal_id,
        created_at=created_at,
        expires_at=created_at + ALERT_TTL,
        severity="critical" if pattern.historical_close_rate < 0.5 else "urgent",
        category="pattern",
        alert_type="agreement_momentum_loss",
        title=f"Pattern Detected: {pattern.pattern_name}",
        description=(
            f"This deal matches {round(pattern.similarity * 100)}% with the "
            f'"{pattern.pattern_name}" pattern. Key characteristics: '
            f"{'; '.join(pattern.key_characteristics[:2])}."
        ),
        contextual_insight=insight,
        stall_risk_score=assessment.overall_risk_score,
        historical_close_rate=pattern.historical_close_rate,
        interventions=_interventions(PATTERN_INTERVENTIONS),
    )


def term_progress_percent(categories: Sequence[CategoryWithTerms]) -> float:
    terms = [term for category in categories for term in category.terms]
    if not terms:
        return 0.0
    agreed = sum(1 for term in terms if term.negotiation_status == NegotiationStatus.AGREED)
    return agreed / len(terms) * 100


def _closing_window_alert(
    deal_id: str,
    ctx: _AlertContext,
    categories: Sequence[CategoryWithTerms],
) -> Optional[DealAccelerationAlert]:
    metrics = ctx.metrics
    if ctx.assessment.risk_level == "critical" or metrics.velocity_trend == "stalled":
        return None
    if sum(1 for p in ctx.participants if p.is_active) < CLOSING_WINDOW_MIN_ACTIVE:
        return None
    progress = term_progress_percent(categories)
    if (
        progress < CLOSING_WINDOW_MIN_PROGRESS
        or metrics.participant_engagement_rate < CLOSING_WINDOW_MIN_ENGAGEMENT
    ):
        return None
    created_at = ctx.assessment.assessment_date
    return DealAccelerationAlert(
        alert_id=_alert_id(deal_id, "optimal_closing_window", "opportunity"),
        deal_id=deal_id,
        created_at=created_at,
        expires_at=created_at + OPPORTUNITY_TTL,
        severity="info",
        category="opportunity",
        alert_type="optimal_closing_window",
        title="Optimal Closing Window Detected",
        description=(
            f"Deal is {round(progress)}% complete with strong engagement. Now is the ideal "
            "time to push for final agreements."
        ),
        contextual_insight=(
            "Deals at this stage that accelerate their pace have 85% close rates. Consider "
            "scheduling a final terms call to lock in remaining agreements."
        ),
        stall_risk_score=CLOSING_WINDOW_RISK_SCORE,
        historical_close_rate=CLOSING_WINDOW_CLOSE_RATE,
        interventions=_interventions(CLOSING_WINDOW_INTERVENTIONS),
    )


def deduplicate_alerts(alerts: Sequence[DealAccelerationAlert]) -> list[DealAccelerationAlert]:
    seen: set[tuple[str, str]] = set()
    unique = []
    for alert in alerts:
        key = (alert.alert_type, alert.category)
        if key in seen:
            continue
        seen.add(key)
        unique.append(alert)
    return unique


def generate_alerts(
    deal_id: str,
    assessment: StallRiskAssessment,
    metrics: VelocityMetrics,
    participants: Sequence[ParticipantEngagement],
    categories: Sequence[CategoryWithTerms],
) -> list[DealAccelerationAlert]:
    """Build the active acceleration alerts for a deal.

    Alerts are stamped with the assessment date, so the same assessment always
    yields the same alerts.
    """
    ctx = _AlertContext(assessment=assessment, metrics=metrics, participants=participants)
    candidates: list[Optional[DealAccelerationAlert]] = [
        _alert_from_factor(deal_id, factor, ctx) for factor in assessment.risk_factors
    ]
    candidates.extend(
        _alert_from_pattern(deal_id, pattern, assessment)
        for pattern in assessment.matched_patterns[:PATTERN_ALERT_LIMIT]
    )
    candidates.append(_closing_window_alert(deal_id, ctx, categories))

    alerts = sorted(
        deduplicate_alerts([alert for alert in candidates if alert is not None]),
        key=lambda alert: SEVERITY_ORDER[alert.severity],
    )
    logger.info(
        "deal_alerts.generated",
        extra={
            "extra_fields": {
                "deal_id": deal_id,
                "alert_count": len(alerts),
                "urgent_alert_count": sum(1 for a in alerts if a.severity in URGENT_SEVERITIES),
            }
        },
    )
    return alerts
