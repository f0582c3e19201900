from typing import Annotated

from fastapi import APIRouter, Path, status

from src.api.request_models import AvailableTransitionsRequest, TransitionCheckRequest
from src.api.routers.negotiation_http_errors import raise_negotiation_http_exception
from src.core.negotiation import (
    AvailableTransition,
    InvalidStatusTransitionError,
    NegotiationStatus,
    StatusMetadata,
    TransitionCheckResult,
    TransitionDescriptor,
    describe_transitions,
    get_available_transitions,
    is_transition_valid,
    list_status_metadata,
    validate_status_transition,
)

router = APIRouter(tags=["Term Negotiation Status"])

INVALID_TRANSITION_422_EXAMPLE = {
    "summary": "Guard not satisfied",
    "value": {
        "detail": {
            "code": "INVALID_STATUS_TRANSITION",
            "message": "Guard condition not met: User must be deal lead",
            "currentStatus": "agreed",
            "targetStatus": "locked",
        }
    },
}


@router.get(
    "/negotiation/statuses",
    response_model=list[StatusMetadata],
    status_code=status.HTTP_200_OK,
    summary="List Negotiation Statuses",
    description="Returns label, description, display priority and next statuses per status.",
)
def list_negotiation_statuses() -> list[StatusMetadata]:
    return list_status_metadata()


@router.get(
    "/negotiation/statuses/{negotiation_status}/transitions",
    response_model=list[TransitionDescriptor],
    status_code=status.HTTP_200_OK,
    summary="Describe Outgoing Transitions",
    description="Returns every outgoing transition with the guards it evaluates.",
)
def list_status_transitions(
    negotiation_status: Annotated[
        NegotiationStatus,
        Path(description="Current negotiation status.", examples=["proposed"]),
    ],
) -> list[TransitionDescriptor]:
    return describe_transitions(negotiation_status)


@router.post(
    "/negotiation/transitions/check",
    response_model=TransitionCheckResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Check Status Transition",
    description="Evaluates a transition against the caller context. Never fails on rejection.",
)
def check_status_transition(payload: TransitionCheckRequest) -> TransitionCheckResult:
    return is_transition_valid(payload.current_status, payload.target_status, payload.context)


@router.post(
    "/negotiation/transitions/available",
    response_model=list[AvailableTransition],
    status_code=status.HTTP_200_OK,
    summary="List Available Transitions",
    description="Evaluates every outgoing transition of the current status for the context.",
)
def list_available_transitions(
    payload: AvailableTransitionsRequest,
) -> list[AvailableTransition]:
    return get_available_transitions(payload.current_status, payload.context)


@router.post(
    "/negotiation/transitions/validate",
    response_model=TransitionCheckResult,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Validate Status Transition",
    description=(
        "Validates a transition and rejects it with 422 when not allowed. "
        "Does not apply the transition."
    ),
    responses={
        422: {
            "description": "Transition not allowed.",
            "content": {
                "application/json": {
                    "examples": {"invalid_transition": INVALID_TRANSITION_422_EXAMPLE}
                }
            },
        }
    },
)
def validate_transition(payload: TransitionCheckRequest) -> TransitionCheckResult:
    try:
        validate_status_transition(
            payload.current_status, payload.target_status, payload.context
        )
    except InvalidStatusTransitionError as exc:
        raise_negotiation_http_exception(exc)
    return TransitionCheckResult(valid=True)
