"""Timer and on-demand trigger for the pipeline.

The scheduler owns a SnapshotCache: an explicit TTL entity recording the
last successful run. A trigger inside the TTL returns the cached Outcome
instead of hitting the upstream API again, unless ``force`` is set.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace

from lightfeed.logging import get_logger
from lightfeed.models import Outcome
from lightfeed.orchestrator import PipelineOrchestrator

logger = get_logger(__name__)


class SnapshotCache:
    """Last successful Outcome plus the monotonic time it was recorded.

    Args:
        ttl_seconds: How long a successful run counts as fresh.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self._ttl = ttl_seconds
        self._outcome: Outcome | None = None
        self._recorded_at: float = 0.0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    def is_fresh(self) -> bool:
        return self._outcome is not None and (
            time.monotonic() - self._recorded_at < self._ttl
        )

    def age_seconds(self) -> float | None:
        if self._outcome is None:
            return None
        return time.monotonic() - self._recorded_at

    def record(self, outcome: Outcome) -> None:
        """Store a successful Outcome; failures are ignored."""
        if not outcome.success:
            return
        self._outcome = outcome
        self._recorded_at = time.monotonic()

    def invalidate(self) -> None:
        self._outcome = None
        self._recorded_at = 0.0


class PipelineScheduler:
    """Runs the pipeline every ``interval_seconds`` and on demand.

    No mutual exclusion between runs: overlapping runs race on the store,
    and the store's revision precondition makes the loser fail.

    Args:
        orchestrator: The pipeline to run.
        cache: Snapshot cache consulted by ``trigger``.
        interval_seconds: Delay between timer-driven runs.
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        cache: SnapshotCache,
        interval_seconds: float,
    ) -> None:
        self._orchestrator = orchestrator
        self._cache = cache
        self._interval = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._last_outcome: Outcome | None = None

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    @property
    def last_outcome(self) -> Outcome | None:
        """Most recent Outcome of any operation, successful or not."""
        return self._last_outcome

    @property
    def is_running(self) -> bool:
        return self._running

    async def trigger(self, force: bool = False) -> Outcome:
        """Run the pipeline now, or return the cached Outcome while fresh."""
        if not force and self._cache.is_fresh():
            cached = self._cache.outcome
            logger.info(
                "pipeline_cache_valid",
                age_seconds=round(self._cache.age_seconds() or 0.0, 1),
                ttl_seconds=self._cache.ttl_seconds,
            )
            return replace(cached, cached=True)

        outcome = await self._orchestrator.run()
        self._cache.record(outcome)
        self._last_outcome = outcome
        return outcome

    async def regenerate(self) -> Outcome:
        """Rebuild the derived document from stored raw. Cache untouched."""
        outcome = await self._orchestrator.regenerate()
        self._last_outcome = outcome
        return outcome

    async def update_sentiment(self) -> Outcome:
        """Refresh the sentiment side entry. Cache untouched."""
        outcome = await self._orchestrator.update_sentiment()
        self._last_outcome = outcome
        return outcome

    async def start(self, run_immediately: bool = False) -> None:
        """Begin timer-driven runs in the background."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(run_immediately))
        logger.info("scheduler_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Stop the timer loop; an in-flight run is cancelled."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")

    async def _loop(self, run_immediately: bool) -> None:
        if not run_immediately:
            await asyncio.sleep(self._interval)
        while self._running:
            try:
                outcome = await self.trigger(force=True)
                if not outcome.success:
                    logger.warning(
                        "scheduled_run_failed",
                        stage=outcome.stage.value,
                        error=outcome.error,
                    )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.error("scheduler_loop_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._interval)
