from src.core.negotiation.models import (
    AvailableTransition,
    NegotiationStatus,
    StatusMetadata,
    TransitionCheckResult,
    TransitionContext,
    TransitionDescriptor,
)
from src.core.negotiation.state_machine import (
    NEGOTIATION_STATUS_TRANSITIONS,
    InvalidStatusTransitionError,
    NegotiationStatusError,
    StateTransition,
    TransitionGuard,
    build_transition_context,
    create_default_context,
    describe_transitions,
    get_available_transitions,
    get_next_statuses,
    get_status_description,
    get_status_label,
    get_status_priority,
    get_valid_transitions,
    is_term_finalized,
    is_term_in_negotiation,
    is_transition_valid,
    list_status_metadata,
    validate_status_transition,
)

__all__ = [
    "AvailableTransition",
    "InvalidStatusTransitionError",
    "NEGOTIATION_STATUS_TRANSITIONS",
    "NegotiationStatus",
    "NegotiationStatusError",
    "StateTransition",
    "StatusMetadata",
    "TransitionCheckResult",
    "TransitionContext",
    "TransitionDescriptor",
    "TransitionGuard",
    "build_transition_context",
    "create_default_context",
    "describe_transitions",
    "get_available_transitions",
    "get_next_statuses",
    "get_status_description",
    "get_status_label",
    "get_status_priority",
    "get_valid_transitions",
    "is_term_finalized",
    "is_term_in_negotiation",
    "is_transition_valid",
    "list_status_metadata",
    "validate_status_transition",
]
