"""
FILE: src/api/main.py
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.routers.deal_velocity import router as deal_velocity_router
from src.api.routers.negotiation_status import router as negotiation_status_router

app = FastAPI(
    title="Deal Negotiation Risk & State API",
    version="0.1.0",
    description=(
        "Term negotiation status state machine and deal velocity / stall-risk analytics.\n\n"
        "All endpoints are pure computations over the supplied payload; nothing is persisted."
    ),
    openapi_tags=[
        {
            "name": "Term Negotiation Status",
            "description": "Status metadata and guarded transition checks for negotiated terms.",
        },
        {
            "name": "Deal Velocity & Stall Risk",
            "description": "Velocity metrics, stall-risk assessment and deal health summaries.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
)

setup_observability(app)
logger = logging.getLogger(__name__)

app.include_router(negotiation_status_router)
app.include_router(deal_velocity_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"])
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready", tags=["Health"])
def health_ready() -> dict[str, str]:
    return {"status": "ready"}
