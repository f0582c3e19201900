from typing import NoReturn

from fastapi import HTTPException, status

from src.api.routers.deals_config import DealBenchmarkNotFoundError
from src.core.negotiation import InvalidStatusTransitionError

HTTP_422_UNPROCESSABLE = getattr(
    status, "HTTP_422_UNPROCESSABLE_CONTENT", status.HTTP_422_UNPROCESSABLE_ENTITY
)


def raise_negotiation_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, InvalidStatusTransitionError):
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail={
                "code": "INVALID_STATUS_TRANSITION",
                "message": str(exc),
                "currentStatus": exc.current_status.value,
                "targetStatus": exc.target_status.value,
            },
        ) from exc
    if isinstance(exc, DealBenchmarkNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    raise exc
