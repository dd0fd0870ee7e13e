"""Batch reconciliation of zone geometry.

Runs every zone through validate -> (repair) -> persist, collecting one
RecordOutcome per zone and reducing them into a RunSummary at the end. No
counters are shared between records, so the same per-record step serves the
sequential path and the thread pool path.
"""

import contextvars
import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from zonefix.common.tracing import run_mode_context, zone_context
from zonefix.config import DEFAULT_REPAIR_CONFIG, RepairConfig
from zonefix.errors import ConflictError, RecordNotFoundError, StoreConnectionError
from zonefix.models.domain import GeometryRecord, RecordOutcome, RunSummary
from zonefix.models.enums import (
    DiagnosticStatus,
    RecordPredicate,
    RecordState,
    RunMode,
    ValidationMode,
)
from zonefix.repositories.protocols import ZoneStore
from zonefix.validation.geometry import GeometryValidator, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunReport:
    """Everything a reconciliation pass produced.

    Attributes:
        outcomes: One outcome per processed zone, in fetch order
        summary: Aggregate counts reduced from the outcomes
    """

    outcomes: list[RecordOutcome]
    summary: RunSummary


class ReconciliationRunner:
    """Orchestrates reconciliation passes over a zone store.

    The runner never keeps per-record state on the instance; a single runner
    can execute several passes one after another.

    Attributes:
        store: Zone store to read from and write to
        validator: Geometry validator (built from config when not given)
        config: Repair policy, also supplies max_workers
    """

    def __init__(
        self,
        store: ZoneStore,
        validator: GeometryValidator | None = None,
        config: RepairConfig = DEFAULT_REPAIR_CONFIG,
    ):
        self.store = store
        self.config = config
        self.validator = validator or GeometryValidator(config)

    def run(self, mode: RunMode, stop_event: threading.Event | None = None) -> RunReport:
        """Run one reconciliation pass over every zone.

        Args:
            mode: APPLY persists repairs, DRY_RUN reports what would change,
                VERIFY reports validity with repairs disabled
            stop_event: Checked between records; once set, no further
                records are started

        Returns:
            RunReport with per-record outcomes and the summary

        Raises:
            StoreConnectionError: If the zones cannot be fetched at all
        """
        stop_event = stop_event or threading.Event()
        with run_mode_context(mode.value):
            return self._run(mode, stop_event)

    def _run(self, mode: RunMode, stop_event: threading.Event) -> RunReport:
        records = self.store.fetch_all(RecordPredicate.ALL)
        logger.info(f"Starting {mode.value} pass over {len(records)} zone(s)")

        if self.config.max_workers > 1 and len(records) > 1:
            outcomes = self._run_parallel(records, mode, stop_event)
        else:
            outcomes = self._run_sequential(records, mode, stop_event)

        cancelled = len(outcomes) < len(records)
        if cancelled:
            logger.warning(
                f"Pass cancelled after {len(outcomes)} of {len(records)} zone(s)"
            )

        summary = RunSummary.from_outcomes(mode, outcomes, cancelled=cancelled)
        logger.info(
            f"Finished {mode.value} pass: total={summary.total} repaired={summary.repaired} "
            f"invalid={summary.invalid} unchanged={summary.unchanged} failed={summary.failed}"
        )
        return RunReport(outcomes=outcomes, summary=summary)

    def fix_zone(
        self,
        record_id: str,
        coordinates_json: str | None = None,
        dry_run: bool = False,
    ) -> RecordOutcome:
        """Repair a single zone, or replace its coordinates outright.

        With coordinates_json the supplied coordinates are authoritative: they
        are only checked for polygon structure and ring closure, and no
        repair heuristic runs.

        Args:
            record_id: Zone to fix
            coordinates_json: Replacement coordinates as a JSON string
            dry_run: Validate without persisting

        Returns:
            RecordOutcome for the zone

        Raises:
            RecordNotFoundError: If no zone has this id
            ValueError: If coordinates_json is not valid JSON
        """
        coordinates = None
        if coordinates_json is not None:
            try:
                coordinates = json.loads(coordinates_json)
            except json.JSONDecodeError as e:
                msg = f"Coordinates are not valid JSON: {e.msg} (at position {e.pos})"
                raise ValueError(msg) from e

        mode = RunMode.DRY_RUN if dry_run else RunMode.APPLY
        with run_mode_context(mode.value):
            record = self.store.fetch_by_id(record_id)
            with zone_context(record.id):
                if coordinates_json is not None:
                    logger.info(f"Applying manual coordinates override to zone {record.id}")
                    result = self.validator.validate_override(record, coordinates)
                else:
                    result = self.validator.validate(record, ValidationMode.FIX)
                return self._complete(record, result, mode)

    def _run_sequential(
        self, records: list[GeometryRecord], mode: RunMode, stop_event: threading.Event
    ) -> list[RecordOutcome]:
        outcomes = []
        for record in records:
            if stop_event.is_set():
                break
            outcomes.append(self._process(record, mode))
        return outcomes

    def _run_parallel(
        self, records: list[GeometryRecord], mode: RunMode, stop_event: threading.Event
    ) -> list[RecordOutcome]:
        """Process records on a bounded thread pool.

        Records still queued when the stop event is set are skipped. If the
        pool cannot accept work, the remaining records run on this thread.
        """
        max_workers = min(self.config.max_workers, len(records))
        logger.info(f"Processing {len(records)} zones with {max_workers} worker threads")

        futures: list[Future] = []
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="zonefix") as executor:
            try:
                for record in records:
                    # Each task gets its own context copy so the run mode is visible to logging
                    ctx = contextvars.copy_context()
                    futures.append(
                        executor.submit(ctx.run, self._process_unless_stopped, record, mode, stop_event)
                    )
            except RuntimeError as exc:
                logger.warning(
                    f"Parallel reconciliation unavailable ({exc}); falling back to sequential"
                )
            results = [future.result() for future in futures]

        for record in records[len(futures):]:
            results.append(self._process_unless_stopped(record, mode, stop_event))

        return [outcome for outcome in results if outcome is not None]

    def _process_unless_stopped(
        self, record: GeometryRecord, mode: RunMode, stop_event: threading.Event
    ) -> RecordOutcome | None:
        if stop_event.is_set():
            return None
        return self._process(record, mode)

    def _process(self, record: GeometryRecord, mode: RunMode) -> RecordOutcome:
        """Validate one zone and, in apply mode, write back its repair."""
        with zone_context(record.id):
            result = self.validator.validate(record, mode.validation_mode)
            return self._complete(record, result, mode)

    def _complete(
        self, record: GeometryRecord, result: ValidationOutcome, mode: RunMode
    ) -> RecordOutcome:
        diagnostic = result.diagnostic
        # Repairs on a record that stays Invalid are discarded, so they count as skipped
        kept = result.changed and diagnostic.status is not DiagnosticStatus.INVALID
        states = [
            RecordState.FETCHED,
            RecordState.CLASSIFIED,
            RecordState.REPAIR_APPLIED if kept else RecordState.REPAIR_SKIPPED,
            RecordState.VALIDATED,
        ]
        persisted = False
        stored_active = record.active
        error = None

        if diagnostic.status is DiagnosticStatus.INVALID:
            for issue in diagnostic.unresolved:
                logger.warning(f"Zone {record.id} needs manual fix: {issue.code}: {issue.message}")

        if mode.writes and kept:
            try:
                stored = self.store.persist(result.record)
            except (ConflictError, StoreConnectionError, RecordNotFoundError) as e:
                logger.error(f"Failed to persist zone {record.id}: {e}")
                error = str(e)
            else:
                persisted = True
                stored_active = stored.active
                states.append(RecordState.PERSISTED)
                logger.info(f"Fixed zone {record.id}: {', '.join(diagnostic.fixes)}")

        if not persisted:
            states.append(RecordState.REPORTED)
        return RecordOutcome(
            record_id=record.id,
            title=record.title,
            diagnostic=diagnostic,
            record=result.record,
            states=states,
            persisted=persisted,
            stored_active=stored_active,
            error=error,
        )
