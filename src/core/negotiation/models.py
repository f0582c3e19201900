from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from src.core.common.wire import CamelModel

NegotiationMode = Literal["collaborative", "proposal_based"]


class NegotiationStatus(str, Enum):
    NOT_STARTED = "not_started"
    PROPOSED = "proposed"
    UNDER_DISCUSSION = "under_discussion"
    PENDING_APPROVAL = "pending_approval"
    AGREED = "agreed"
    LOCKED = "locked"


class TransitionContext(CamelModel):
    is_deal_lead: bool = Field(
        default=False,
        description="Whether the acting participant is the deal lead.",
        examples=[True],
    )
    can_approve: bool = Field(
        default=False,
        description="Whether the acting participant holds approval permission.",
        examples=[False],
    )
    has_pending_proposals: bool = Field(
        default=False,
        description="Whether the term has proposals awaiting a response.",
        examples=[False],
    )
    all_parties_approved: bool = Field(
        default=False,
        description="Whether every required party has approved the current value.",
        examples=[False],
    )
    is_locked: bool = Field(
        default=False,
        description="Whether the term is currently locked.",
        examples=[False],
    )
    negotiation_mode: NegotiationMode = Field(
        default="proposal_based",
        description="Deal negotiation mode.",
        examples=["proposal_based"],
    )
    require_unanimous_consent: bool = Field(
        default=False,
        description="Whether agreement requires approval from every party.",
        examples=[False],
    )


class TransitionCheckResult(CamelModel):
    valid: bool = Field(description="Whether the transition is allowed.", examples=[False])
    reason: Optional[str] = Field(
        default=None,
        description="Human-readable rejection reason when the transition is not allowed.",
        examples=["Guard condition not met: User must be deal lead"],
    )


class GuardDescriptor(CamelModel):
    guard_id: str = Field(description="Stable guard identifier.", examples=["deal_lead"])
    description: str = Field(
        description="Condition the acting participant must satisfy.",
        examples=["User must be deal lead"],
    )


class TransitionDescriptor(CamelModel):
    target_status: NegotiationStatus = Field(
        description="Status reached by this transition.", examples=["locked"]
    )
    description: str = Field(
        description="When this transition applies.",
        examples=["Lock the agreed term to prevent further changes"],
    )
    guards: List[GuardDescriptor] = Field(
        default_factory=list,
        description="Guards evaluated in order; all must pass.",
    )


class AvailableTransition(CamelModel):
    target_status: NegotiationStatus = Field(
        description="Candidate target status.", examples=["agreed"]
    )
    description: str = Field(description="When this transition applies.")
    valid: bool = Field(description="Whether the transition passes for the given context.")
    reason: Optional[str] = Field(default=None, description="Rejection reason, if any.")


class StatusMetadata(CamelModel):
    status: NegotiationStatus = Field(description="Negotiation status.", examples=["agreed"])
    label: str = Field(description="Display label.", examples=["Agreed"])
    description: str = Field(description="Display description.")
    priority: int = Field(description="Display ordering rank, 0 first.", examples=[1])
    is_finalized: bool = Field(description="Whether the status is agreed or locked.")
    is_in_negotiation: bool = Field(
        description="Whether the status is proposed, under discussion or pending approval."
    )
    next_statuses: List[NegotiationStatus] = Field(
        default_factory=list,
        description="Statuses reachable from this one, ignoring guards.",
    )
