"""Entry point for the market snapshot pipeline.

Wires all components together, optionally embeds the FastAPI dashboard,
and starts the scheduler. When the dashboard is enabled (default), the
scheduler and dashboard share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. SnapshotFetcher (market-data source)
4. ContentStore (GitHub or in-memory)
5. PipelineOrchestrator
6. SnapshotCache + PipelineScheduler

With both the dashboard and the scheduler disabled, a single pipeline run
is executed and the process exits non-zero on failure.
"""

import asyncio
import signal
import sys
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from lightfeed.config import AppSettings
from lightfeed.logging import get_logger, setup_logging
from lightfeed.market_data.fetcher import SnapshotFetcher
from lightfeed.orchestrator import PipelineOrchestrator
from lightfeed.scheduler import PipelineScheduler, SnapshotCache
from lightfeed.store import create_store


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all pipeline components from settings.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    logger = get_logger("lightfeed.main")

    fetcher = SnapshotFetcher(settings.source)
    store = create_store(settings.store)

    if settings.store.backend == "memory":
        logger.warning(
            "memory_store_selected",
            note="Documents are kept in process memory and lost on exit.",
        )

    orchestrator = PipelineOrchestrator(settings=settings, fetcher=fetcher, store=store)
    cache = SnapshotCache(ttl_seconds=settings.scheduler.cache_ttl_seconds)
    scheduler = PipelineScheduler(
        orchestrator=orchestrator,
        cache=cache,
        interval_seconds=settings.scheduler.interval_seconds,
    )

    return {
        "fetcher": fetcher,
        "store": store,
        "orchestrator": orchestrator,
        "scheduler": scheduler,
    }


async def _close_components(components: dict[str, Any]) -> None:
    await components["scheduler"].stop()
    await components["fetcher"].close()
    await components["store"].close()


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """SIGINT/SIGTERM set the stop event. Must run inside the event loop."""
    logger = get_logger("lightfeed.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: exposes components on app.state and starts the scheduler.
    On shutdown: stops the scheduler and closes HTTP clients.
    """
    logger = get_logger("lightfeed.main")
    settings: AppSettings = app.state.settings
    components = app.state.components

    app.state.store = components["store"]
    app.state.scheduler = components["scheduler"]

    if settings.scheduler.enabled:
        await components["scheduler"].start(run_immediately=settings.scheduler.run_on_start)

    logger.info("lifespan_started", scheduler_enabled=settings.scheduler.enabled)

    yield

    await _close_components(components)
    logger.info("lightfeed_stopped")


async def run() -> int:
    """Run the pipeline service; returns a process exit code."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("lightfeed.main")

    missing = settings.missing_settings()
    if missing:
        logger.warning("settings_incomplete", missing=missing)

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from lightfeed.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
        return 0

    if not settings.scheduler.enabled:
        try:
            outcome = await components["orchestrator"].run()
        finally:
            await _close_components(components)
        logger.info("single_run_finished", outcome=outcome.to_dict())
        return 0 if outcome.success else 1

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)
    logger.info(
        "starting_without_dashboard",
        interval_seconds=settings.scheduler.interval_seconds,
    )
    try:
        await components["scheduler"].start(run_immediately=True)
        await stop_event.wait()
    finally:
        await _close_components(components)
        logger.info("lightfeed_stopped")
    return 0


def main() -> None:
    """Synchronous entry point."""
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
