from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.core.common.wire import CamelModel
from src.core.negotiation.models import NegotiationStatus

ActivityEventType = Literal[
    "proposal_created",
    "proposal_response",
    "comment_added",
    "term_agreed",
    "term_locked",
    "participant_joined",
    "status_changed",
]
PartyType = Literal["borrower_side", "lender_side", "third_party"]
VelocityTrend = Literal["accelerating", "stable", "decelerating", "stalled"]
EngagementTrend = Literal["increasing", "stable", "decreasing"]
RiskSeverity = Literal["low", "medium", "high"]
RiskLevel = Literal["low", "medium", "high", "critical"]
RiskFactorType = Literal[
    "inactivity_period",
    "low_engagement",
    "stuck_on_term",
    "unresponsive_party",
    "covenant_stalemate",
    "pricing_deadlock",
    "deadline_proximity",
    "participant_dropout",
    "proposal_rejection_streak",
]
PatternOutcomeType = Literal[
    "closed_successfully", "stalled_recovered", "stalled_failed", "terminated"
]
DealHealth = Literal["healthy", "at_risk", "critical"]
AlertSeverity = Literal["info", "warning", "urgent", "critical"]
AlertCategory = Literal["velocity", "engagement", "deadline", "pattern", "opportunity"]
DealAlertType = Literal[
    "covenant_negotiation_pause",
    "pricing_term_deadlock",
    "participant_disengagement",
    "overall_velocity_decline",
    "deadline_risk",
    "proposal_rejection_pattern",
    "communication_gap",
    "unaddressed_comments",
    "agreement_momentum_loss",
    "party_response_delay",
    "optimal_closing_window",
]
InterventionType = Literal[
    "schedule_call",
    "send_summary",
    "propose_package_deal",
    "escalate_to_senior",
    "break_term_into_parts",
    "offer_conditional_agreement",
    "request_deadline_extension",
    "add_mediator",
    "share_market_data",
    "propose_interim_agreement",
]
InterventionPriority = Literal["primary", "secondary", "alternative"]

NEVER_DAYS = 999
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ActivityEvent(CamelModel):
    id: str = Field(description="Activity event identifier.", examples=["act_001"])
    deal_id: str = Field(description="Deal the event belongs to.", examples=["deal_001"])
    event_type: ActivityEventType = Field(
        description="Kind of negotiation activity.", examples=["proposal_created"]
    )
    actor_id: str = Field(description="Participant that produced the event.", examples=["user-1"])
    actor_party: str = Field(description="Party of the actor.", examples=["BigBank NA"])
    term_id: Optional[str] = Field(default=None, description="Related term.", examples=["t_1"])
    term_category: Optional[str] = Field(
        default=None, description="Category of the related term.", examples=["Pricing Terms"]
    )
    timestamp: datetime = Field(
        description="UTC ISO8601 time the event occurred.",
        examples=["2026-02-19T12:00:00+00:00"],
    )
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form event data.")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class DealParticipant(CamelModel):
    participant_id: str = Field(description="Participant identifier.", examples=["user-1"])
    party_name: str = Field(description="Party display name.", examples=["Apollo Holdings LLC"])
    party_type: PartyType = Field(description="Side of the deal.", examples=["borrower_side"])
    deal_role: str = Field(description="Role within the deal.", examples=["deal_lead"])


class ParticipantEngagement(CamelModel):
    participant_id: str = Field(description="Participant identifier.", examples=["user-1"])
    party_name: str = Field(description="Party display name.", examples=["Apollo Holdings LLC"])
    party_type: PartyType = Field(description="Side of the deal.", examples=["borrower_side"])
    deal_role: str = Field(description="Role within the deal.", examples=["deal_lead"])
    last_activity_at: datetime = Field(
        default=EPOCH, description="Time of the participant's latest activity."
    )
    proposals_created: int = Field(default=0, ge=0)
    proposals_responded: int = Field(default=0, ge=0)
    comments_added: int = Field(default=0, ge=0)
    engagement_score: float = Field(default=0, ge=0, le=100)
    is_active: bool = Field(default=False)
    days_since_last_activity: int = Field(default=NEVER_DAYS)


class NegotiationTerm(BaseModel):
    model_config = {"frozen": True}

    id: str = Field(description="Term identifier.", examples=["term_1"])
    term_label: str = Field(description="Term display label.", examples=["Leverage Ratio"])
    negotiation_status: NegotiationStatus = Field(
        description="Current negotiation status.", examples=["under_discussion"]
    )
    pending_proposals_count: int = Field(default=0, ge=0)
    comments_count: int = Field(default=0, ge=0)


class CategoryWithTerms(BaseModel):
    model_config = {"frozen": True}

    id: str = Field(description="Category identifier.", examples=["cat_1"])
    name: str = Field(description="Category name.", examples=["Financial Covenants"])
    display_order: int = Field(default=0)
    parent_category_id: Optional[str] = Field(default=None)
    terms: List[NegotiationTerm] = Field(default_factory=list)


class HealthyVelocityRange(CamelModel):
    min_proposals_per_day: float = Field(default=0.5, ge=0)
    max_proposals_per_day: float = Field(default=5, ge=0)
    min_comments_per_day: float = Field(default=1, ge=0)
    max_comments_per_day: float = Field(default=15, ge=0)


class CommonStallPoint(CamelModel):
    category: str = Field(examples=["Financial Covenants"])
    frequency: float = Field(ge=0, le=1, examples=[0.35])
    average_resolution_days: float = Field(ge=0, examples=[7])


class DealBenchmark(CamelModel):
    deal_type: str = Field(default="new_facility", examples=["new_facility"])
    deal_size: Literal["small", "medium", "large"] = Field(default="medium")
    complexity: Literal["low", "medium", "high"] = Field(default="medium")
    average_days_to_close: float = Field(default=45, ge=0)
    median_days_to_close: float = Field(default=38, ge=0)
    average_proposals_per_term: float = Field(default=2.3, ge=0)
    average_comments_per_term: float = Field(default=4.5, ge=0)
    healthy_velocity_range: HealthyVelocityRange = Field(default_factory=HealthyVelocityRange)
    inactivity_warning_days: int = Field(default=3, ge=0)
    inactivity_critical_days: int = Field(default=5, ge=0)
    close_rate: float = Field(default=0.72, ge=0, le=1)
    common_stall_points: List[CommonStallPoint] = Field(default_factory=list)


class VelocityMetrics(CamelModel):
    deal_id: str
    measurement_date: datetime
    average_time_between_proposals: float = Field(description="Mean gap in hours.")
    average_time_between_comments: float = Field(description="Mean gap in hours.")
    days_since_last_activity: int
    days_since_last_proposal: int
    days_since_last_agreement: int
    proposals_per_day: float
    comments_per_day: float
    participant_engagement_rate: float = Field(description="Percent of participants active.")
    response_rate_to_proposals: float = Field(description="Responses per proposal, percent.")
    agreed_terms_per_day: float
    progress_velocity: float = Field(description="Percent progress per day.")
    estimated_days_to_completion: Optional[int]
    velocity_trend: VelocityTrend
    engagement_trend: EngagementTrend
    compared_to_historical_average: float = Field(description="1.0 is historical pace.")


class RiskFactor(CamelModel):
    factor_type: RiskFactorType
    severity: RiskSeverity
    weight: float = Field(gt=0, le=1)
    description: str
    related_term_id: Optional[str] = None
    related_party_id: Optional[str] = None
    data_points: Dict[str, Any] = Field(default_factory=dict)


class HistoricalPattern(CamelModel):
    pattern_id: str = Field(examples=["covenant-deadlock"])
    pattern_name: str = Field(examples=["Covenant Negotiation Deadlock"])
    outcome_type: PatternOutcomeType
    historical_close_rate: float = Field(ge=0, le=1)
    average_recovery_days: Optional[float] = None
    key_characteristics: List[str] = Field(default_factory=list)


class HistoricalPatternMatch(CamelModel):
    pattern_id: str
    pattern_name: str
    similarity: float = Field(ge=0, le=1)
    outcome_type: PatternOutcomeType
    historical_close_rate: float = Field(ge=0, le=1)
    average_recovery_days: Optional[float] = None
    key_characteristics: List[str] = Field(default_factory=list)


class StallRiskAssessment(CamelModel):
    deal_id: str
    assessment_date: datetime
    overall_risk_score: float = Field(ge=0, le=100)
    risk_level: RiskLevel
    probability_of_stall: float = Field(ge=0, le=0.95)
    estimated_days_until_stall: Optional[int]
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    matched_patterns: List[HistoricalPatternMatch] = Field(default_factory=list)
    confidence: float = Field(ge=0.6, le=0.95)


class SuggestedIntervention(CamelModel):
    intervention_type: InterventionType = Field(examples=["schedule_call"])
    priority: InterventionPriority = Field(examples=["primary"])
    title: str = Field(examples=["Schedule Alignment Call"])


class DealAccelerationAlert(CamelModel):
    alert_id: str = Field(
        description="Stable identifier derived from deal, alert type and category.",
        examples=["alert_deal_001_overall_velocity_decline_velocity"],
    )
    deal_id: str
    created_at: datetime
    expires_at: datetime
    severity: AlertSeverity
    category: AlertCategory
    alert_type: DealAlertType
    title: str
    description: str
    contextual_insight: Optional[str] = None
    stall_risk_score: float = Field(ge=0, le=100)
    historical_close_rate: float = Field(ge=0, le=1)
    interventions: List[SuggestedIntervention] = Field(default_factory=list)


class DealHealthSummary(CamelModel):
    deal_id: str
    deal_name: str
    overall_health: DealHealth
    health_score: float = Field(ge=0, le=100)
    velocity_metrics: VelocityMetrics
    stall_risk: StallRiskAssessment
    participant_engagement: List[ParticipantEngagement] = Field(default_factory=list)
    active_alerts: List[DealAccelerationAlert] = Field(default_factory=list)
    executive_summary: str
    top_priorities: List[str] = Field(default_factory=list)
    positive_indicators: List[str] = Field(default_factory=list)
    concern_areas: List[str] = Field(default_factory=list)
