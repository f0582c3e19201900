from datetime import datetime
from typing import List, Optional

from pydantic import Field

from src.core.common.wire import CamelModel
from src.core.negotiation.models import NegotiationStatus, TransitionContext
from src.core.velocity.models import (
    ActivityEvent,
    CategoryWithTerms,
    DealBenchmark,
    DealParticipant,
    ParticipantEngagement,
)


class TransitionCheckRequest(CamelModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "currentStatus": "agreed",
                "targetStatus": "locked",
                "context": {"isDealLead": True, "negotiationMode": "proposal_based"},
            }
        }
    }

    current_status: NegotiationStatus = Field(
        description="Status the term is currently in.", examples=["agreed"]
    )
    target_status: NegotiationStatus = Field(
        description="Status the caller wants to move the term to.", examples=["locked"]
    )
    context: TransitionContext = Field(
        default_factory=TransitionContext,
        description="Permissions and term state of the acting participant.",
    )


class AvailableTransitionsRequest(CamelModel):
    current_status: NegotiationStatus = Field(
        description="Status the term is currently in.", examples=["under_discussion"]
    )
    context: TransitionContext = Field(
        default_factory=TransitionContext,
        description="Permissions and term state of the acting participant.",
    )


class DealVelocityRequest(CamelModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "activities": [
                    {
                        "id": "act_1",
                        "dealId": "deal_001",
                        "eventType": "proposal_created",
                        "actorId": "user-1",
                        "actorParty": "Apollo Holdings LLC",
                        "termId": "term_1",
                        "termCategory": "Pricing Terms",
                        "timestamp": "2026-02-19T12:00:00+00:00",
                    }
                ],
                "roster": [
                    {
                        "participantId": "user-1",
                        "partyName": "Apollo Holdings LLC",
                        "partyType": "borrower_side",
                        "dealRole": "deal_lead",
                    }
                ],
                "categories": [
                    {
                        "id": "cat_1",
                        "name": "Pricing Terms",
                        "terms": [
                            {
                                "id": "term_1",
                                "term_label": "Margin",
                                "negotiation_status": "under_discussion",
                                "pending_proposals_count": 1,
                            }
                        ],
                    }
                ],
            }
        }
    }

    activities: List[ActivityEvent] = Field(
        default_factory=list, description="Deal activity log, any order."
    )
    participants: List[ParticipantEngagement] = Field(
        default_factory=list,
        description="Precomputed participant engagement records.",
    )
    roster: List[DealParticipant] = Field(
        default_factory=list,
        description="Participants to derive engagement from when no records are supplied.",
    )
    categories: List[CategoryWithTerms] = Field(
        default_factory=list, description="Term categories with negotiation state."
    )
    total_terms: Optional[int] = Field(
        default=None, ge=0, description="Total term count; derived from categories when absent."
    )
    agreed_terms: Optional[int] = Field(
        default=None, ge=0, description="Agreed term count; derived from categories when absent."
    )
    benchmark_id: Optional[str] = Field(
        default=None,
        description="Benchmark catalog entry to evaluate against.",
        examples=["new_facility_medium"],
    )
    benchmark: Optional[DealBenchmark] = Field(
        default=None, description="Inline benchmark; takes precedence over benchmarkId."
    )
    as_of: Optional[datetime] = Field(
        default=None,
        description="Evaluation time; defaults to the current UTC time.",
        examples=["2026-02-20T00:00:00+00:00"],
    )


class DealHealthRequest(DealVelocityRequest):
    deal_name: str = Field(description="Deal display name.", examples=["Apollo Term Loan B"])
