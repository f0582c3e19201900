"""
Velocity metrics stage.

Turns a deal's activity log and participant engagement records into a
VelocityMetrics snapshot relative to ``now``. Callers inject ``now`` for
deterministic results; when omitted the current UTC time is read once.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from src.core.velocity.models import (
    EPOCH,
    NEVER_DAYS,
    ActivityEvent,
    DealBenchmark,
    DealParticipant,
    EngagementTrend,
    ParticipantEngagement,
    PartyType,
    VelocityMetrics,
    VelocityTrend,
    as_utc,
)

_DAY = timedelta(days=1)
_WEEK = timedelta(days=7)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime]) -> datetime:
    return _utc_now() if now is None else as_utc(now)


def days_between(earlier: datetime, now: datetime) -> int:
    return math.floor((now - earlier) / _DAY)


def _days_since_latest(events: Sequence[ActivityEvent], now: datetime) -> int:
    if not events:
        return NEVER_DAYS
    return days_between(events[0].timestamp, now)


def _newest_first(events: Iterable[ActivityEvent]) -> list[ActivityEvent]:
    return sorted(events, key=lambda event: event.timestamp, reverse=True)


def _of_type(events: Iterable[ActivityEvent], event_type: str) -> list[ActivityEvent]:
    return [event for event in events if event.event_type == event_type]


def average_interval_hours(events: Sequence[ActivityEvent]) -> float:
    """Mean gap in hours between consecutive events, newest first; 0 below two events."""
    if len(events) < 2:
        return 0.0
    total = sum(
        (events[index].timestamp - events[index + 1].timestamp for index in range(len(events) - 1)),
        timedelta(0),
    )
    return total / timedelta(hours=1) / (len(events) - 1)


def determine_velocity_trend(
    activities: Sequence[ActivityEvent], benchmark: DealBenchmark, *, now: datetime
) -> VelocityTrend:
    one_week_ago = now - _WEEK
    two_weeks_ago = now - 2 * _WEEK
    last_week_count = sum(1 for a in activities if one_week_ago <= a.timestamp < now)
    previous_week_count = sum(1 for a in activities if two_weeks_ago <= a.timestamp < one_week_ago)

    if last_week_count == 0:
        return "stalled"

    daily_average = last_week_count / 7
    if daily_average < benchmark.healthy_velocity_range.min_proposals_per_day:
        return "decelerating"

    if previous_week_count == 0:
        return "accelerating"

    change_ratio = last_week_count / previous_week_count
    if change_ratio > 1.2:
        return "accelerating"
    if change_ratio < 0.7:
        return "decelerating"
    return "stable"


def determine_engagement_trend(participants: Sequence[ParticipantEngagement]) -> EngagementTrend:
    if not participants:
        return "stable"
    active_ratio = sum(1 for p in participants if p.days_since_last_activity <= 3) / len(
        participants
    )
    if active_ratio >= 0.8:
        return "increasing"
    if active_ratio <= 0.4:
        return "decreasing"
    return "stable"


def compute_velocity_metrics(
    deal_id: str,
    activities: Iterable[ActivityEvent],
    participants: Sequence[ParticipantEngagement],
    total_terms: int,
    agreed_terms: int,
    benchmark: DealBenchmark,
    *,
    now: Optional[datetime] = None,
) -> VelocityMetrics:
    now = resolve_now(now)
    ordered = _newest_first(activities)

    proposals = _of_type(ordered, "proposal_created")
    comments = _of_type(ordered, "comment_added")
    agreements = _of_type(ordered, "term_agreed")
    responses = _of_type(ordered, "proposal_response")

    seven_days_ago = now - _WEEK

    def _per_day(events: list[ActivityEvent]) -> float:
        return sum(1 for event in events if event.timestamp >= seven_days_ago) / 7

    active_participants = [p for p in participants if p.days_since_last_activity <= 7]
    participant_engagement_rate = (
        len(active_participants) / len(participants) * 100 if participants else 0.0
    )
    # No proposals means nothing is left unanswered.
    response_rate = len(responses) / len(proposals) * 100 if proposals else 100.0

    progress_percentage = agreed_terms / total_terms * 100 if total_terms > 0 else 0.0
    deal_start = ordered[-1].timestamp if ordered else now
    deal_age_days = max(1, days_between(deal_start, now))
    progress_velocity = progress_percentage / deal_age_days
    estimated_days_to_completion = (
        math.ceil((100 - progress_percentage) / progress_velocity)
        if progress_velocity > 0
        else None
    )

    historical_velocity = (
        100 / benchmark.average_days_to_close if benchmark.average_days_to_close > 0 else 0
    )
    compared_to_historical = (
        progress_velocity / historical_velocity if historical_velocity > 0 else 1.0
    )

    return VelocityMetrics(
        deal_id=deal_id,
        measurement_date=now,
        average_time_between_proposals=average_interval_hours(proposals),
        average_time_between_comments=average_interval_hours(comments),
        days_since_last_activity=_days_since_latest(ordered, now),
        days_since_last_proposal=_days_since_latest(proposals, now),
        days_since_last_agreement=_days_since_latest(agreements, now),
        proposals_per_day=_per_day(proposals),
        comments_per_day=_per_day(comments),
        participant_engagement_rate=participant_engagement_rate,
        response_rate_to_proposals=response_rate,
        agreed_terms_per_day=_per_day(agreements),
        progress_velocity=progress_velocity,
        estimated_days_to_completion=estimated_days_to_completion,
        velocity_trend=determine_velocity_trend(ordered, benchmark, now=now),
        engagement_trend=determine_engagement_trend(participants),
        compared_to_historical_average=compared_to_historical,
    )


def compute_participant_engagement(
    participant_id: str,
    party_name: str,
    party_type: PartyType,
    deal_role: str,
    activities: Iterable[ActivityEvent],
    *,
    now: Optional[datetime] = None,
) -> ParticipantEngagement:
    now = resolve_now(now)
    own = _newest_first(a for a in activities if a.actor_id == participant_id)

    proposals_created = len(_of_type(own, "proposal_created"))
    proposals_responded = len(_of_type(own, "proposal_response"))
    comments_added = len(_of_type(own, "comment_added"))
    days_since_last_activity = _days_since_latest(own, now)

    activity_score = min(proposals_created * 20 + proposals_responded * 15 + comments_added * 5, 50)
    recency_score = max(0, 50 - days_since_last_activity * 10)
    engagement_score = min(100, activity_score + recency_score)

    return ParticipantEngagement(
        participant_id=participant_id,
        party_name=party_name,
        party_type=party_type,
        deal_role=deal_role,
        last_activity_at=own[0].timestamp if own else EPOCH,
        proposals_created=proposals_created,
        proposals_responded=proposals_responded,
        comments_added=comments_added,
        engagement_score=engagement_score,
        is_active=days_since_last_activity <= 7 and engagement_score >= 20,
        days_since_last_activity=days_since_last_activity,
    )


def derive_participant_engagements(
    roster: Iterable[DealParticipant],
    activities: Sequence[ActivityEvent],
    *,
    now: Optional[datetime] = None,
) -> list[ParticipantEngagement]:
    now = resolve_now(now)
    return [
        compute_participant_engagement(
            member.participant_id,
            member.party_name,
            member.party_type,
            member.deal_role,
            activities,
            now=now,
        )
        for member in roster
    ]
