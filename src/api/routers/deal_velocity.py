import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from src.api.request_models import DealHealthRequest, DealVelocityRequest
from src.api.routers.deals_config import (
    DealBenchmarkNotFoundError,
    resolve_benchmark,
    resolve_pattern_catalog,
    velocity_apis_enabled,
)
from src.api.routers.negotiation_http_errors import raise_negotiation_http_exception
from src.core.negotiation import NegotiationStatus
from src.core.velocity import (
    DealBenchmark,
    DealHealthSummary,
    ParticipantEngagement,
    StallRiskAssessment,
    VelocityMetrics,
    assess_stall_risk,
    build_deal_health_summary,
    compute_velocity_metrics,
    derive_participant_engagements,
)
from src.core.velocity.metrics import resolve_now

router = APIRouter(tags=["Deal Velocity & Stall Risk"])
logger = logging.getLogger(__name__)

DealIdPath = Annotated[
    str,
    Path(description="Deal identifier.", examples=["deal_001"]),
]


def _assert_velocity_apis_enabled() -> None:
    if not velocity_apis_enabled():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="DEAL_VELOCITY_APIS_DISABLED",
        )


def _benchmark_for(payload: DealVelocityRequest) -> DealBenchmark:
    try:
        return resolve_benchmark(
            benchmark_id=payload.benchmark_id,
            inline_benchmark=payload.benchmark,
        )
    except DealBenchmarkNotFoundError as exc:
        raise_negotiation_http_exception(exc)


def _participants_for(
    payload: DealVelocityRequest, now: datetime
) -> list[ParticipantEngagement]:
    if payload.participants:
        return list(payload.participants)
    return derive_participant_engagements(payload.roster, payload.activities, now=now)


def _term_counts(payload: DealVelocityRequest) -> tuple[int, int]:
    terms = [term for category in payload.categories for term in category.terms]
    total_terms = payload.total_terms if payload.total_terms is not None else len(terms)
    agreed_terms = (
        payload.agreed_terms
        if payload.agreed_terms is not None
        else sum(1 for term in terms if term.negotiation_status == NegotiationStatus.AGREED)
    )
    return total_terms, agreed_terms


def _analyze(
    deal_id: str, payload: DealVelocityRequest
) -> tuple[VelocityMetrics, list[ParticipantEngagement], DealBenchmark, datetime]:
    now = resolve_now(payload.as_of)
    benchmark = _benchmark_for(payload)
    participants = _participants_for(payload, now)
    total_terms, agreed_terms = _term_counts(payload)
    metrics = compute_velocity_metrics(
        deal_id,
        payload.activities,
        participants,
        total_terms,
        agreed_terms,
        benchmark,
        now=now,
    )
    return metrics, participants, benchmark, now


def _assess(deal_id: str, payload: DealVelocityRequest):
    metrics, participants, benchmark, now = _analyze(deal_id, payload)
    assessment = assess_stall_risk(
        deal_id,
        metrics,
        participants,
        payload.categories,
        benchmark,
        pattern_catalog=resolve_pattern_catalog(),
        now=now,
    )
    return metrics, participants, assessment


@router.post(
    "/deals/{deal_id}/velocity/metrics",
    response_model=VelocityMetrics,
    status_code=status.HTTP_200_OK,
    summary="Compute Deal Velocity Metrics",
    description="Computes rates, recency, progress and trend metrics from the activity log.",
)
def compute_deal_velocity(
    deal_id: DealIdPath,
    payload: DealVelocityRequest,
    _enabled: None = Depends(_assert_velocity_apis_enabled),
) -> VelocityMetrics:
    metrics, _, _, _ = _analyze(deal_id, payload)
    return metrics


@router.post(
    "/deals/{deal_id}/velocity/stall-risk",
    response_model=StallRiskAssessment,
    status_code=status.HTTP_200_OK,
    summary="Assess Deal Stall Risk",
    description=(
        "Detects risk factors, matches historical patterns and scores the deal's stall risk."
    ),
)
def assess_deal_stall_risk(
    deal_id: DealIdPath,
    payload: DealVelocityRequest,
    _enabled: None = Depends(_assert_velocity_apis_enabled),
) -> StallRiskAssessment:
    _, _, assessment = _assess(deal_id, payload)
    return assessment


@router.post(
    "/deals/{deal_id}/velocity/health-summary",
    response_model=DealHealthSummary,
    status_code=status.HTTP_200_OK,
    summary="Build Deal Health Summary",
    description=(
        "Combines velocity metrics, stall risk and active acceleration alerts into a "
        "dashboard health summary."
    ),
)
def build_deal_health(
    deal_id: DealIdPath,
    payload: DealHealthRequest,
    _enabled: None = Depends(_assert_velocity_apis_enabled),
) -> DealHealthSummary:
    metrics, participants, assessment = _assess(deal_id, payload)
    summary = build_deal_health_summary(
        deal_id, payload.deal_name, metrics, assessment, participants, payload.categories
    )
    logger.info(
        "deal_health.summarized",
        extra={
            "extra_fields": {
                "deal_id": deal_id,
                "overall_health": summary.overall_health,
                "health_score": round(summary.health_score, 2),
                "active_alert_count": len(summary.active_alerts),
            }
        },
    )
    return summary
