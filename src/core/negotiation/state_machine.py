"""
Term negotiation status state machine.

    not_started -> proposed -> under_discussion -> pending_approval -> agreed -> locked
                      ^              |                   |
                      +--------------+-------------------+

Every transition carries zero or more guards evaluated against a
TransitionContext built by the caller. The table is static; nothing here
applies a transition, callers persist accepted transitions themselves.
"""

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Tuple

from src.core.negotiation.models import (
    AvailableTransition,
    GuardDescriptor,
    NegotiationMode,
    NegotiationStatus,
    StatusMetadata,
    TransitionCheckResult,
    TransitionContext,
    TransitionDescriptor,
)


@dataclass(frozen=True)
class TransitionGuard:
    guard_id: str
    description: str
    check: Callable[[TransitionContext], bool]

    def __call__(self, context: TransitionContext) -> bool:
        return self.check(context)


@dataclass(frozen=True)
class StateTransition:
    to: NegotiationStatus
    description: str
    guards: Tuple[TransitionGuard, ...] = field(default_factory=tuple)


ANY_PARTICIPANT = TransitionGuard(
    guard_id="any_participant",
    description="User must be a negotiator or deal lead",
    check=lambda ctx: True,
)
DISCUSSION_STARTED = TransitionGuard(
    guard_id="discussion_started",
    description="At least one response or comment has been made",
    check=lambda ctx: True,
)
BILATERAL_MODE = TransitionGuard(
    guard_id="bilateral_mode",
    description="Deal must be in bilateral mode",
    check=lambda ctx: ctx.negotiation_mode != "collaborative",
)
ACCEPTED_OR_CONSENT_NOT_REQUIRED = TransitionGuard(
    guard_id="accepted_or_consent_not_required",
    description="All parties must accept or unanimous consent not required",
    check=lambda ctx: ctx.all_parties_approved or not ctx.require_unanimous_consent,
)
APPROVED_OR_CONSENT_NOT_REQUIRED = TransitionGuard(
    guard_id="approved_or_consent_not_required",
    description="All parties must approve or unanimous consent not required",
    check=lambda ctx: ctx.all_parties_approved or not ctx.require_unanimous_consent,
)
ALL_PARTIES_ACCEPTED = TransitionGuard(
    guard_id="all_parties_accepted",
    description="All parties must accept",
    check=lambda ctx: ctx.all_parties_approved,
)
CAN_APPROVE = TransitionGuard(
    guard_id="can_approve",
    description="User must have approval permission",
    check=lambda ctx: ctx.can_approve,
)
CAN_APPROVE_OR_DEAL_LEAD = TransitionGuard(
    guard_id="can_approve_or_deal_lead",
    description="User must have approval permission or be deal lead",
    check=lambda ctx: ctx.can_approve or ctx.is_deal_lead,
)
DEAL_LEAD = TransitionGuard(
    guard_id="deal_lead",
    description="User must be deal lead",
    check=lambda ctx: ctx.is_deal_lead,
)
NO_PENDING_PROPOSALS = TransitionGuard(
    guard_id="no_pending_proposals",
    description="No pending proposals should exist",
    check=lambda ctx: not ctx.has_pending_proposals,
)
NOT_LOCKED = TransitionGuard(
    guard_id="not_locked",
    description="Term must not be locked",
    check=lambda ctx: not ctx.is_locked,
)

ALL_GUARDS: Tuple[TransitionGuard, ...] = (
    ANY_PARTICIPANT,
    DISCUSSION_STARTED,
    BILATERAL_MODE,
    ACCEPTED_OR_CONSENT_NOT_REQUIRED,
    APPROVED_OR_CONSENT_NOT_REQUIRED,
    ALL_PARTIES_ACCEPTED,
    CAN_APPROVE,
    CAN_APPROVE_OR_DEAL_LEAD,
    DEAL_LEAD,
    NO_PENDING_PROPOSALS,
    NOT_LOCKED,
)

_S = NegotiationStatus

NEGOTIATION_STATUS_TRANSITIONS: Mapping[NegotiationStatus, Tuple[StateTransition, ...]] = {
    _S.NOT_STARTED: (
        StateTransition(
            to=_S.PROPOSED,
            description="A proposal has been made for this term",
            guards=(ANY_PARTICIPANT,),
        ),
    ),
    _S.PROPOSED: (
        StateTransition(
            to=_S.UNDER_DISCUSSION,
            description="Term is now being actively discussed",
            guards=(DISCUSSION_STARTED,),
        ),
        StateTransition(
            to=_S.PENDING_APPROVAL,
            description="Direct move to pending approval (bilateral deals)",
            guards=(BILATERAL_MODE,),
        ),
        StateTransition(
            to=_S.AGREED,
            description="Immediate agreement on proposal",
            guards=(ACCEPTED_OR_CONSENT_NOT_REQUIRED, CAN_APPROVE),
        ),
        StateTransition(
            to=_S.NOT_STARTED,
            description="Withdraw proposal and reset",
            guards=(DEAL_LEAD,),
        ),
    ),
    _S.UNDER_DISCUSSION: (
        StateTransition(
            to=_S.PENDING_APPROVAL,
            description="Discussion complete, awaiting final approval",
            guards=(CAN_APPROVE_OR_DEAL_LEAD,),
        ),
        StateTransition(
            to=_S.PROPOSED,
            description="New counter-proposal made, restart discussion",
        ),
        StateTransition(
            to=_S.AGREED,
            description="Direct agreement during discussion",
            guards=(ALL_PARTIES_ACCEPTED, CAN_APPROVE),
        ),
        StateTransition(
            to=_S.NOT_STARTED,
            description="Reset term to start fresh",
            guards=(DEAL_LEAD, NO_PENDING_PROPOSALS),
        ),
    ),
    _S.PENDING_APPROVAL: (
        StateTransition(
            to=_S.AGREED,
            description="All required approvals received",
            guards=(APPROVED_OR_CONSENT_NOT_REQUIRED, CAN_APPROVE),
        ),
        StateTransition(
            to=_S.UNDER_DISCUSSION,
            description="Approval rejected, needs more discussion",
            guards=(CAN_APPROVE,),
        ),
        StateTransition(
            to=_S.PROPOSED,
            description="New counter-proposal during approval",
        ),
    ),
    _S.AGREED: (
        StateTransition(
            to=_S.LOCKED,
            description="Lock the agreed term to prevent further changes",
            guards=(DEAL_LEAD,),
        ),
        StateTransition(
            to=_S.UNDER_DISCUSSION,
            description="Reopen agreed term for further negotiation",
            guards=(NOT_LOCKED, DEAL_LEAD),
        ),
    ),
    # Unlocking is a separate out-of-band process.
    _S.LOCKED: (),
}

_STATUS_LABELS = {
    _S.NOT_STARTED: "Not Started",
    _S.PROPOSED: "Proposed",
    _S.UNDER_DISCUSSION: "Under Discussion",
    _S.PENDING_APPROVAL: "Pending Approval",
    _S.AGREED: "Agreed",
    _S.LOCKED: "Locked",
}

_STATUS_DESCRIPTIONS = {
    _S.NOT_STARTED: "No proposals have been made for this term",
    _S.PROPOSED: "A proposal has been submitted and awaits response",
    _S.UNDER_DISCUSSION: "The term is being actively discussed by parties",
    _S.PENDING_APPROVAL: "Discussion complete, awaiting final approval",
    _S.AGREED: "All parties have agreed on the term value",
    _S.LOCKED: "The term is locked and cannot be modified",
}

_STATUS_PRIORITIES = {
    _S.LOCKED: 0,
    _S.AGREED: 1,
    _S.PENDING_APPROVAL: 2,
    _S.UNDER_DISCUSSION: 3,
    _S.PROPOSED: 4,
    _S.NOT_STARTED: 5,
}

_FINALIZED_STATUSES = frozenset({_S.AGREED, _S.LOCKED})
_IN_NEGOTIATION_STATUSES = frozenset({_S.PROPOSED, _S.UNDER_DISCUSSION, _S.PENDING_APPROVAL})


class NegotiationStatusError(Exception):
    pass


class InvalidStatusTransitionError(NegotiationStatusError):
    def __init__(
        self,
        current_status: NegotiationStatus,
        target_status: NegotiationStatus,
        reason: Optional[str] = None,
    ) -> None:
        self.current_status = NegotiationStatus(current_status)
        self.target_status = NegotiationStatus(target_status)
        self.reason = reason
        super().__init__(
            reason
            or (
                f"Invalid status transition from '{self.current_status.value}' "
                f"to '{self.target_status.value}'"
            )
        )


def get_valid_transitions(current_status: NegotiationStatus) -> Tuple[StateTransition, ...]:
    return NEGOTIATION_STATUS_TRANSITIONS.get(NegotiationStatus(current_status), ())


def get_next_statuses(current_status: NegotiationStatus) -> list[NegotiationStatus]:
    return [transition.to for transition in get_valid_transitions(current_status)]


def is_transition_valid(
    current_status: NegotiationStatus,
    target_status: NegotiationStatus,
    context: TransitionContext,
) -> TransitionCheckResult:
    current = NegotiationStatus(current_status)
    target = NegotiationStatus(target_status)

    # Locked beats the same-state no-op.
    if context.is_locked and target != _S.LOCKED:
        return TransitionCheckResult(valid=False, reason="Term is locked and cannot be modified")

    if current == target:
        return TransitionCheckResult(valid=True)

    transitions = get_valid_transitions(current)
    if not transitions:
        return TransitionCheckResult(
            valid=False,
            reason=f"No transitions allowed from '{current.value}' status",
        )

    transition = next((item for item in transitions if item.to == target), None)
    if transition is None:
        allowed = ", ".join(item.to.value for item in transitions)
        return TransitionCheckResult(
            valid=False,
            reason=(
                f"Cannot transition from '{current.value}' to '{target.value}'. "
                f"Allowed transitions: {allowed}"
            ),
        )

    for guard in transition.guards:
        if not guard(context):
            return TransitionCheckResult(
                valid=False,
                reason=f"Guard condition not met: {guard.description}",
            )

    return TransitionCheckResult(valid=True)


def validate_status_transition(
    current_status: NegotiationStatus,
    target_status: NegotiationStatus,
    context: TransitionContext,
) -> None:
    result = is_transition_valid(current_status, target_status, context)
    if not result.valid:
        raise InvalidStatusTransitionError(current_status, target_status, result.reason)


def get_available_transitions(
    current_status: NegotiationStatus, context: TransitionContext
) -> list[AvailableTransition]:
    available = []
    for transition in get_valid_transitions(current_status):
        result = is_transition_valid(current_status, transition.to, context)
        available.append(
            AvailableTransition(
                target_status=transition.to,
                description=transition.description,
                valid=result.valid,
                reason=result.reason,
            )
        )
    return available


def describe_transitions(current_status: NegotiationStatus) -> list[TransitionDescriptor]:
    return [
        TransitionDescriptor(
            target_status=transition.to,
            description=transition.description,
            guards=[
                GuardDescriptor(guard_id=guard.guard_id, description=guard.description)
                for guard in transition.guards
            ],
        )
        for transition in get_valid_transitions(current_status)
    ]


def get_status_label(status: NegotiationStatus) -> str:
    return _STATUS_LABELS[NegotiationStatus(status)]


def get_status_description(status: NegotiationStatus) -> str:
    return _STATUS_DESCRIPTIONS[NegotiationStatus(status)]


def get_status_priority(status: NegotiationStatus) -> int:
    """Display ordering only; locked sorts first."""
    return _STATUS_PRIORITIES[NegotiationStatus(status)]


def is_term_finalized(status: NegotiationStatus) -> bool:
    return NegotiationStatus(status) in _FINALIZED_STATUSES


def is_term_in_negotiation(status: NegotiationStatus) -> bool:
    return NegotiationStatus(status) in _IN_NEGOTIATION_STATUSES


def list_status_metadata() -> list[StatusMetadata]:
    return [
        StatusMetadata(
            status=status,
            label=get_status_label(status),
            description=get_status_description(status),
            priority=get_status_priority(status),
            is_finalized=is_term_finalized(status),
            is_in_negotiation=is_term_in_negotiation(status),
            next_statuses=get_next_statuses(status),
        )
        for status in sorted(NegotiationStatus, key=get_status_priority)
    ]


def create_default_context(**overrides) -> TransitionContext:
    return TransitionContext(**overrides)


def build_transition_context(
    *,
    deal_role: str,
    can_approve: bool,
    pending_proposals_count: int,
    is_locked: bool,
    negotiation_mode: Optional[str],
    require_unanimous_consent: bool,
    all_parties_approved: bool = False,
) -> TransitionContext:
    is_deal_lead = deal_role == "deal_lead"
    mode: NegotiationMode = (
        "collaborative" if negotiation_mode == "collaborative" else "proposal_based"
    )
    return create_default_context(
        is_deal_lead=is_deal_lead,
        can_approve=can_approve or is_deal_lead,
        has_pending_proposals=pending_proposals_count > 0,
        all_parties_approved=all_parties_approved,
        is_locked=is_locked,
        negotiation_mode=mode,
        require_unanimous_consent=require_unanimous_consent,
    )
