"""POST endpoints for manually triggering pipeline operations."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from lightfeed.models import Outcome

log = structlog.get_logger(__name__)

router = APIRouter()


def _outcome_response(outcome: Outcome) -> JSONResponse:
    status_code = 200 if outcome.success else 500
    return JSONResponse(status_code=status_code, content=outcome.to_dict())


@router.post("/run")
async def run_pipeline(request: Request, force: bool = True) -> JSONResponse:
    """Run fetch -> filter -> merge -> persist now.

    With ``force=false`` a fresh cached outcome is returned instead.
    """
    scheduler = request.app.state.scheduler
    outcome = await scheduler.trigger(force=force)
    log.info(
        "pipeline_triggered_via_dashboard",
        force=force,
        success=outcome.success,
        cached=outcome.cached,
    )
    return _outcome_response(outcome)


@router.post("/regenerate")
async def regenerate_derived(request: Request) -> JSONResponse:
    """Rebuild the derived document from the stored raw snapshot."""
    scheduler = request.app.state.scheduler
    outcome = await scheduler.regenerate()
    log.info("regenerate_triggered_via_dashboard", success=outcome.success)
    return _outcome_response(outcome)


@router.post("/sentiment")
async def update_sentiment(request: Request) -> JSONResponse:
    """Refresh the sentiment side entry from the global-metrics document."""
    scheduler = request.app.state.scheduler
    outcome = await scheduler.update_sentiment()
    log.info("sentiment_triggered_via_dashboard", success=outcome.success)
    return _outcome_response(outcome)
