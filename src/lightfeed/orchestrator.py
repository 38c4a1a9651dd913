"""Pipeline orchestrator -- sequences fetch, filter, merge and persist.

Main run, one linear pass per invocation:
  1. CONFIGURE: verify source and store coordinates (no I/O)
  2. FETCH_RAW: fetch the market snapshot
  3. PERSIST_RAW: commit the snapshot verbatim (pretty-printed)
  4. FILTER: rank and truncate into the derived list
  5. READ_PREVIOUS_DERIVED: best-effort read of the persisted derived list
  6. MERGE: carry the sentiment side entry over
  7. PERSIST_DERIVED: commit the derived list

Any stage failure ends the run with a failed Outcome naming the stage,
except READ_PREVIOUS_DERIVED whose failure only means "nothing to
preserve". Writes already committed stay committed. The orchestrator never
raises to its caller; the scheduler and dashboard act on the Outcome.

Two supplementary operations share the same stages: ``regenerate`` rebuilds
the derived list from the stored raw snapshot, and ``update_sentiment``
refreshes the side entry from the global-metrics document.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from lightfeed.config import AppSettings
from lightfeed.exceptions import (
    ConfigurationError,
    LightfeedError,
    MalformedDataError,
    StoreReadError,
)
from lightfeed.logging import get_logger, run_context
from lightfeed.market_data.fetcher import SnapshotFetcher
from lightfeed.market_data.ranking import filter_snapshot
from lightfeed.market_data.sentiment import build_side_entry
from lightfeed.models import Outcome, PipelineStage, utc_now_iso
from lightfeed.pipeline.merge import (
    find_side_entry,
    preserve_side_entry,
    read_previous_derived,
    replace_side_entry,
)
from lightfeed.store.client import ContentStore

logger = get_logger(__name__)


def to_pretty_json(document: Any) -> str:
    """Persisted document format: 2-space indent, non-ASCII kept as-is."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def compact_size(document: Any) -> int:
    """Length of the compact JSON serialization, used for Outcome sizes."""
    return len(json.dumps(document, ensure_ascii=False, separators=(",", ":")))


class PipelineOrchestrator:
    """Runs the snapshot pipeline against a fetcher and a content store.

    Args:
        settings: Application-wide settings (paths, capacity, retries).
        fetcher: Market-data source client.
        store: Versioned content store.
    """

    def __init__(
        self,
        settings: AppSettings,
        fetcher: SnapshotFetcher,
        store: ContentStore,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._store = store

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def store(self) -> ContentStore:
        return self._store

    # ──────────────────────────────────────────────
    # Operations
    # ──────────────────────────────────────────────

    async def run(self) -> Outcome:
        """Fetch a fresh snapshot, persist raw and derived documents."""
        store_settings = self._settings.store
        stage = PipelineStage.CONFIGURE

        with run_context("run"):
            try:
                self._check_configuration(require_source=True)

                stage = PipelineStage.FETCH_RAW
                raw = await self._fetcher.fetch_snapshot()
                raw_size = compact_size(raw)

                stage = PipelineStage.PERSIST_RAW
                # Independent documents: look up the raw revision and read the
                # previous derived list at the same time
                raw_revision, (previous, derived_revision) = await asyncio.gather(
                    self._lookup_revision(store_settings.raw_path),
                    self._read_previous(),
                )
                await self._store.put(
                    store_settings.raw_path,
                    to_pretty_json(raw),
                    expected_revision=raw_revision,
                    message=f"Update {store_settings.raw_path} - {utc_now_iso()}",
                )
                logger.info("raw_persisted", path=store_settings.raw_path, size=raw_size)

                stage = PipelineStage.FILTER
                fresh = [
                    e.to_dict()
                    for e in filter_snapshot(raw, self._settings.pipeline.capacity)
                ]

                stage = PipelineStage.MERGE
                merged = preserve_side_entry(fresh, previous)
                preserved = find_side_entry(previous) is not None
                if preserved:
                    logger.info("side_entry_preserved", path=store_settings.derived_path)

                stage = PipelineStage.PERSIST_DERIVED
                await self._persist_derived(merged, derived_revision, verb="Update")
            except Exception as e:
                return self._failed("run", stage, e)

        outcome = Outcome(
            success=True,
            operation="run",
            stage=PipelineStage.DONE,
            raw_size=raw_size,
            filtered_size=compact_size(merged),
            entry_count=len(merged),
            preserved_side_entry=preserved,
        )
        logger.info(
            "pipeline_completed",
            operation="run",
            entries=outcome.entry_count,
            raw_size=outcome.raw_size,
            filtered_size=outcome.filtered_size,
        )
        return outcome

    async def regenerate(self) -> Outcome:
        """Rebuild the derived document from the stored raw snapshot.

        Used after changing the capacity or ranking rules without spending
        an upstream API call. The side entry is preserved as in ``run``.
        """
        store_settings = self._settings.store
        stage = PipelineStage.CONFIGURE

        with run_context("regenerate"):
            try:
                self._check_configuration(require_source=False)

                stage = PipelineStage.READ_RAW
                document = await self._store.get(store_settings.raw_path)
                if document is None:
                    raise MalformedDataError(
                        f"{store_settings.raw_path} does not exist yet; run the pipeline first"
                    )
                try:
                    raw = json.loads(document.content)
                except ValueError as e:
                    raise MalformedDataError(
                        f"{store_settings.raw_path} is not valid JSON: {e}"
                    ) from e
                raw_size = compact_size(raw)

                stage = PipelineStage.FILTER
                fresh = [
                    e.to_dict()
                    for e in filter_snapshot(raw, self._settings.pipeline.capacity)
                ]

                stage = PipelineStage.READ_PREVIOUS_DERIVED
                previous, derived_revision = await self._read_previous()

                stage = PipelineStage.MERGE
                merged = preserve_side_entry(fresh, previous)
                preserved = find_side_entry(previous) is not None

                stage = PipelineStage.PERSIST_DERIVED
                await self._persist_derived(merged, derived_revision, verb="Regenerate")
            except Exception as e:
                return self._failed("regenerate", stage, e)

        logger.info("pipeline_completed", operation="regenerate", entries=len(merged))
        return Outcome(
            success=True,
            operation="regenerate",
            stage=PipelineStage.DONE,
            raw_size=raw_size,
            filtered_size=compact_size(merged),
            entry_count=len(merged),
            preserved_side_entry=preserved,
        )

    async def update_sentiment(self) -> Outcome:
        """Refresh the sentiment side entry from the global-metrics document.

        Persists the global document, then rewrites the derived list with
        the new side entry at the front, replacing any existing one. A
        derived document that exists but is unreadable or not a list fails
        the MERGE stage and is left untouched.
        """
        store_settings = self._settings.store
        stage = PipelineStage.CONFIGURE

        with run_context("sentiment"):
            try:
                self._check_configuration(require_source=True)

                stage = PipelineStage.FETCH_GLOBAL
                global_data = await self._fetcher.fetch_global()
                side_entry = build_side_entry(global_data).to_dict()

                stage = PipelineStage.PERSIST_GLOBAL
                global_revision = await self._lookup_revision(store_settings.global_path)
                await self._store.put(
                    store_settings.global_path,
                    to_pretty_json(global_data),
                    expected_revision=global_revision,
                    message=f"Update {store_settings.global_path} - {utc_now_iso()}",
                )
                logger.info("global_persisted", path=store_settings.global_path)

                stage = PipelineStage.READ_PREVIOUS_DERIVED
                previous, derived_revision = await self._read_previous()

                stage = PipelineStage.MERGE
                if not isinstance(previous, list):
                    if derived_revision is None:
                        derived_revision = await self._lookup_revision(
                            store_settings.derived_path
                        )
                    if derived_revision is not None:
                        # An existing list we cannot read must not be replaced
                        # by the side entry alone
                        raise MalformedDataError(
                            f"{store_settings.derived_path} exists but is not a readable "
                            "list; run or regenerate the pipeline first"
                        )
                merged = replace_side_entry(previous, side_entry)

                stage = PipelineStage.PERSIST_DERIVED
                await self._persist_derived(merged, derived_revision, verb="Update")
            except Exception as e:
                return self._failed("sentiment", stage, e)

        logger.info(
            "side_entry_updated",
            fear_greed=side_entry["price"],
            altcoin_index=side_entry["h24"],
            entries=len(merged),
        )
        return Outcome(
            success=True,
            operation="sentiment",
            stage=PipelineStage.DONE,
            raw_size=compact_size(global_data),
            filtered_size=compact_size(merged),
            entry_count=len(merged),
            preserved_side_entry=True,
        )

    # ──────────────────────────────────────────────
    # Internal helpers
    # ──────────────────────────────────────────────

    def _check_configuration(self, require_source: bool) -> None:
        missing = self._settings.missing_settings()
        if not require_source:
            missing = [name for name in missing if not name.startswith("SOURCE_")]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    async def _lookup_revision(self, path: str) -> str | None:
        """Current revision of ``path``; read errors mean "create"."""
        try:
            document = await self._store.get(path)
        except StoreReadError as e:
            logger.warning("revision_lookup_failed", path=path, error=str(e))
            return None
        return document.revision if document is not None else None

    async def _read_previous(self) -> tuple[Any, str | None]:
        """Previous derived list and its revision; any failure means "none"."""
        pipeline = self._settings.pipeline
        path = self._settings.store.derived_path
        try:
            return await read_previous_derived(
                self._store,
                path,
                attempts=pipeline.previous_read_attempts,
                backoff_seconds=pipeline.previous_read_backoff_seconds,
            )
        except Exception as e:
            logger.warning(
                "previous_derived_read_failed",
                path=path,
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return None, None

    async def _persist_derived(
        self, entries: list[dict], revision: str | None, verb: str
    ) -> None:
        path = self._settings.store.derived_path
        if revision is None:
            revision = await self._lookup_revision(path)
        await self._store.put(
            path,
            to_pretty_json(entries),
            expected_revision=revision,
            message=f"{verb} {path} - {utc_now_iso()}",
        )
        logger.info("derived_persisted", path=path, entries=len(entries))

    @staticmethod
    def _failed(operation: str, stage: PipelineStage, error: Exception) -> Outcome:
        if isinstance(error, LightfeedError):
            logger.error(
                "pipeline_failed",
                stage=stage.value,
                error_type=type(error).__name__,
                error=str(error),
            )
        else:
            logger.error("pipeline_failed", stage=stage.value, error=str(error), exc_info=True)
        return Outcome(
            success=False,
            operation=operation,
            stage=stage,
            error=f"{type(error).__name__}: {error}",
        )
