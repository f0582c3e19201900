from datetime import datetime, timedelta
from typing import Iterable, Optional

from src.core.negotiation import NegotiationStatus
from src.core.velocity import (
    ActivityEvent,
    CategoryWithTerms,
    DealParticipant,
    NegotiationTerm,
    ParticipantEngagement,
    VelocityMetrics,
)


def activity(
    event_type: str,
    at: datetime,
    *,
    event_id: str = "act",
    deal_id: str = "deal_1",
    actor_id: str = "user-1",
    actor_party: str = "BigBank NA",
    term_id: Optional[str] = None,
) -> ActivityEvent:
    return ActivityEvent(
        id=event_id,
        deal_id=deal_id,
        event_type=event_type,
        actor_id=actor_id,
        actor_party=actor_party,
        term_id=term_id,
        timestamp=at,
    )


def spread_activities(
    now: datetime,
    *,
    count: int,
    days: float,
    event_type: str = "comment_added",
    offset_days: float = 0,
) -> list[ActivityEvent]:
    """``count`` events evenly spaced inside (now - offset - days, now - offset)."""
    step = timedelta(days=days) / (count + 1)
    start = now - timedelta(days=offset_days)
    return [
        activity(event_type, start - step * (index + 1), event_id=f"act_{offset_days}_{index}")
        for index in range(count)
    ]


def engagement(
    participant_id: str = "user-1",
    *,
    days_since_last_activity: int = 0,
    deal_role: str = "negotiator",
    is_active: bool = True,
    party_name: str = "Apollo Holdings LLC",
    engagement_score: float = 60,
) -> ParticipantEngagement:
    return ParticipantEngagement(
        participant_id=participant_id,
        party_name=party_name,
        party_type="borrower_side",
        deal_role=deal_role,
        days_since_last_activity=days_since_last_activity,
        is_active=is_active,
        engagement_score=engagement_score,
    )


def roster_member(
    participant_id: str, *, deal_role: str = "negotiator", party_type: str = "lender_side"
) -> DealParticipant:
    return DealParticipant(
        participant_id=participant_id,
        party_name=f"Party {participant_id}",
        party_type=party_type,
        deal_role=deal_role,
    )


def term(
    term_id: str,
    status: NegotiationStatus = NegotiationStatus.UNDER_DISCUSSION,
    *,
    pending: int = 0,
    comments: int = 0,
    label: Optional[str] = None,
) -> NegotiationTerm:
    return NegotiationTerm(
        id=term_id,
        term_label=label or f"Term {term_id}",
        negotiation_status=status,
        pending_proposals_count=pending,
        comments_count=comments,
    )


def category(name: str, terms: Iterable[NegotiationTerm], *, category_id: str = "") -> CategoryWithTerms:
    return CategoryWithTerms(id=category_id or name.lower().replace(" ", "_"), name=name, terms=list(terms))


def metrics(now: datetime, **overrides) -> VelocityMetrics:
    """Healthy baseline metrics that trigger no risk factor."""
    values = {
        "deal_id": "deal_1",
        "measurement_date": now,
        "average_time_between_proposals": 12.0,
        "average_time_between_comments": 6.0,
        "days_since_last_activity": 0,
        "days_since_last_proposal": 1,
        "days_since_last_agreement": 1,
        "proposals_per_day": 1.0,
        "comments_per_day": 0.5,
        "participant_engagement_rate": 100.0,
        "response_rate_to_proposals": 100.0,
        "agreed_terms_per_day": 0.5,
        "progress_velocity": 3.0,
        "estimated_days_to_completion": 10,
        "velocity_trend": "accelerating",
        "engagement_trend": "increasing",
        "compared_to_historical_average": 1.35,
    }
    values.update(overrides)
    return VelocityMetrics(**values)
