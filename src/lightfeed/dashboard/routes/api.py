"""JSON read endpoints: stored documents, pipeline status, configuration check."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from lightfeed.config import AppSettings
from lightfeed.exceptions import StoreReadError

log = structlog.get_logger(__name__)

router = APIRouter()


async def _document_response(request: Request, path: str) -> Response:
    """Serve a stored document verbatim, 404 if absent, 502 if unreadable."""
    store = request.app.state.store
    try:
        document = await store.get(path)
    except StoreReadError as e:
        log.warning("document_read_failed", path=path, error=str(e))
        return JSONResponse(status_code=502, content={"error": str(e)})

    if document is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"{path} is not available yet. Trigger a pipeline run first."},
        )
    return Response(content=document.content, media_type="application/json")


@router.get("/raw")
async def get_raw(request: Request) -> Response:
    """The raw snapshot exactly as last persisted."""
    settings: AppSettings = request.app.state.settings
    return await _document_response(request, settings.store.raw_path)


@router.get("/light")
async def get_light(request: Request) -> Response:
    """The derived (ranked, truncated) list including the side entry."""
    settings: AppSettings = request.app.state.settings
    return await _document_response(request, settings.store.derived_path)


@router.get("/global")
async def get_global(request: Request) -> Response:
    """The global-metrics document behind the sentiment side entry."""
    settings: AppSettings = request.app.state.settings
    return await _document_response(request, settings.store.global_path)


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Last outcome, cache freshness and scheduler state."""
    scheduler = request.app.state.scheduler
    cache = scheduler.cache
    last = scheduler.last_outcome
    age = cache.age_seconds()

    return JSONResponse(content={
        "scheduler_running": scheduler.is_running,
        "cache_fresh": cache.is_fresh(),
        "cache_age_seconds": round(age, 1) if age is not None else None,
        "cache_ttl_seconds": cache.ttl_seconds,
        "last_outcome": last.to_dict() if last is not None else None,
    })


def _token_format(token: str) -> str:
    if not token:
        return "not set"
    if token.startswith("ghp_"):
        return "classic personal access token"
    if token.startswith("github_pat_"):
        return "fine-grained personal access token"
    return "unknown format"


@router.get("/check-config")
async def check_config(request: Request) -> JSONResponse:
    """Report which settings are present. Secret values are never echoed."""
    settings: AppSettings = request.app.state.settings
    token = settings.store.token.get_secret_value()
    api_key = settings.source.api_key.get_secret_value()

    variables = [
        {"name": "SOURCE_URL", "is_set": bool(settings.source.url), "value": settings.source.url},
        {"name": "SOURCE_API_KEY", "is_set": bool(api_key), "length": len(api_key)},
        {"name": "STORE_BACKEND", "is_set": True, "value": settings.store.backend},
        {
            "name": "STORE_TOKEN",
            "is_set": bool(token),
            "length": len(token),
            "format": _token_format(token),
        },
        {"name": "STORE_OWNER", "is_set": bool(settings.store.owner), "value": settings.store.owner},
        {"name": "STORE_REPO", "is_set": bool(settings.store.repo), "value": settings.store.repo},
        {"name": "STORE_BRANCH", "is_set": bool(settings.store.branch), "value": settings.store.branch},
        {"name": "PIPELINE_CAPACITY", "is_set": True, "value": settings.pipeline.capacity},
    ]
    missing = settings.missing_settings()

    return JSONResponse(content={
        "all_configured": not missing,
        "missing": missing,
        "variables": variables,
    })
