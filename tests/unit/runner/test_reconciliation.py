"""Unit tests for the reconciliation runner."""

import threading
from unittest.mock import MagicMock

import pytest

from tests.utils import CLOSED_SQUARE, OPEN_SQUARE, InMemoryZoneStore, make_record
from zonefix.common.tracing import ctx_run_mode
from zonefix.config import RepairConfig
from zonefix.errors import RecordNotFoundError, StoreConnectionError
from zonefix.models.domain import GeometryRecord
from zonefix.models.enums import DiagnosticStatus, GeometryType, RecordState, RunMode
from zonefix.runner.reconciliation import ReconciliationRunner


@pytest.fixture
def mixed_records():
    """Create a set of zones covering every outcome."""
    return [
        make_record("valid"),
        make_record("point", coordinates=[10, 20]),
        make_record("open", coordinates=OPEN_SQUARE),
        make_record("inactive", active=False),
        make_record("unsupported", coordinates=[1, 2, 3]),
        make_record("missing-type", geometry_type=None),
        make_record("out-of-range", coordinates=[[[0, 0], [0, 100], [1, 100], [0, 0]]]),
    ]


@pytest.fixture
def store(mixed_records):
    """Create an in-memory store seeded with the mixed records."""
    return InMemoryZoneStore(mixed_records)


def _by_id(report):
    return {outcome.record_id: outcome for outcome in report.outcomes}


def test_apply_pass_summary(store):
    """Test an apply pass counts repaired, invalid and unchanged zones."""
    report = ReconciliationRunner(store).run(RunMode.APPLY)

    summary = report.summary
    assert summary.total == 7
    assert summary.repaired == 3
    assert summary.invalid == 3
    assert summary.unchanged == 1
    assert summary.failed == 0
    assert summary.active == 7
    assert not summary.cancelled


def test_apply_persists_only_repaired_zones(store):
    """Test valid and invalid zones are never written."""
    report = ReconciliationRunner(store).run(RunMode.APPLY)

    outcomes = _by_id(report)
    assert store.writes == 3
    assert {rid for rid, o in outcomes.items() if o.persisted} == {"point", "open", "inactive"}
    assert store.get("open").coordinates == CLOSED_SQUARE
    assert store.get("inactive").active is True
    assert store.get("point").geometry_type is GeometryType.POLYGON
    assert store.get("unsupported").coordinates == [1, 2, 3]


def test_record_states(store):
    """Test each zone walks the states in causal order."""
    outcomes = _by_id(ReconciliationRunner(store).run(RunMode.APPLY))

    assert outcomes["open"].states == [
        RecordState.FETCHED,
        RecordState.CLASSIFIED,
        RecordState.REPAIR_APPLIED,
        RecordState.VALIDATED,
        RecordState.PERSISTED,
    ]
    assert outcomes["open"].final_state is RecordState.PERSISTED
    assert outcomes["valid"].states == [
        RecordState.FETCHED,
        RecordState.CLASSIFIED,
        RecordState.REPAIR_SKIPPED,
        RecordState.VALIDATED,
        RecordState.REPORTED,
    ]
    assert outcomes["valid"].final_state is RecordState.REPORTED


def test_invalid_zone_with_housekeeping_fix_is_repair_skipped():
    """Test an activation fix on a zone that stays Invalid is neither kept nor persisted."""
    store = InMemoryZoneStore([make_record("broken", coordinates=[1, 2, 3], active=False)])

    outcome = ReconciliationRunner(store).run(RunMode.APPLY).outcomes[0]

    assert outcome.diagnostic.status is DiagnosticStatus.INVALID
    assert RecordState.REPAIR_SKIPPED in outcome.states
    assert RecordState.REPAIR_APPLIED not in outcome.states
    assert outcome.final_state is RecordState.REPORTED
    assert not outcome.persisted
    assert store.writes == 0
    assert store.get("broken").active is False


def test_run_mode_context_reset_after_pass(store):
    """Test the pass mode is only bound while a pass or single-zone fix runs."""
    seen = []
    real_persist = store.persist

    def persist_and_record_mode(record: GeometryRecord) -> GeometryRecord:
        seen.append(ctx_run_mode.get())
        return real_persist(record)

    store.persist = persist_and_record_mode
    runner = ReconciliationRunner(store)

    runner.run(RunMode.APPLY)
    assert ctx_run_mode.get() == ""

    runner.fix_zone("valid", "[[[0,0],[2,0],[2,2],[0,2],[0,0]]]")
    assert ctx_run_mode.get() == ""

    assert seen == ["apply"] * 4


def test_run_mode_context_reset_after_failed_fetch(store):
    """Test the pass mode is unbound even when the store cannot be read."""
    store.unreachable = True

    with pytest.raises(StoreConnectionError):
        ReconciliationRunner(store).run(RunMode.VERIFY)

    assert ctx_run_mode.get() == ""


def test_second_apply_pass_changes_nothing(store):
    """Test fixing twice makes no further changes."""
    runner = ReconciliationRunner(store)
    runner.run(RunMode.APPLY)
    writes_after_first = store.writes

    second = runner.run(RunMode.APPLY)

    assert store.writes == writes_after_first
    assert second.summary.repaired == 0
    assert second.summary.unchanged == 4
    assert second.summary.invalid == 3
    assert all(not outcome.diagnostic.fixes for outcome in second.outcomes)


def test_dry_run_writes_nothing(store):
    """Test dry-run reports would-be repairs without touching the store."""
    report = ReconciliationRunner(store).run(RunMode.DRY_RUN)

    assert store.writes == 0
    assert report.summary.repaired == 3
    assert not any(outcome.persisted for outcome in report.outcomes)
    assert store.get("open").coordinates == OPEN_SQUARE
    assert store.get("inactive").active is False


def test_dry_run_then_apply_match(mixed_records):
    """Test dry-run predicts the fixes apply mode makes."""
    dry = ReconciliationRunner(InMemoryZoneStore(mixed_records)).run(RunMode.DRY_RUN)
    applied = ReconciliationRunner(InMemoryZoneStore(mixed_records)).run(RunMode.APPLY)

    assert [o.diagnostic.fixes for o in dry.outcomes] == [
        o.diagnostic.fixes for o in applied.outcomes
    ]


def test_verify_never_mutates(store):
    """Test a verify pass only reads, using a store that rejects writes."""
    store.persist = MagicMock(side_effect=AssertionError("verify must not write"))

    report = ReconciliationRunner(store).run(RunMode.VERIFY)

    store.persist.assert_not_called()
    assert report.summary.unchanged == 1
    assert report.summary.invalid == 6
    assert report.summary.repaired == 0


def test_verify_and_dry_run_report_same_malformed_count(store):
    """Test verify and dry-run agree on how many zones have issues."""
    runner = ReconciliationRunner(store)

    verify = runner.run(RunMode.VERIFY)
    dry_run = runner.run(RunMode.DRY_RUN)

    assert verify.summary.malformed == dry_run.summary.malformed == 6


def test_active_count_after_pass(store):
    """Test the active count reflects the store after the pass."""
    assert ReconciliationRunner(store).run(RunMode.VERIFY).summary.active == 6
    assert ReconciliationRunner(store).run(RunMode.APPLY).summary.active == 7


def test_conflict_is_counted_and_pass_continues(store):
    """Test a concurrent modification fails one zone, not the pass."""
    store.conflict_ids.add("point")

    report = ReconciliationRunner(store).run(RunMode.APPLY)

    outcomes = _by_id(report)
    assert outcomes["point"].failed
    assert "modified concurrently" in outcomes["point"].error
    assert outcomes["point"].final_state is RecordState.REPORTED
    assert RecordState.PERSISTED not in outcomes["point"].states
    assert outcomes["open"].persisted
    assert report.summary.failed == 1
    assert report.summary.repaired == 2
    assert report.summary.total == 7


def test_connection_loss_on_write_is_counted(store):
    """Test a write connectivity failure is per-record."""
    store.unreachable_ids.add("inactive")

    report = ReconciliationRunner(store).run(RunMode.APPLY)

    assert _by_id(report)["inactive"].failed
    assert _by_id(report)["inactive"].stored_active is False
    assert report.summary.failed == 1


def test_unreachable_store_aborts_before_any_record(store):
    """Test a fetch failure propagates instead of producing a report."""
    store.unreachable = True

    with pytest.raises(StoreConnectionError):
        ReconciliationRunner(store).run(RunMode.APPLY)


def test_empty_store():
    """Test a pass over no zones yields an empty summary."""
    report = ReconciliationRunner(InMemoryZoneStore()).run(RunMode.APPLY)

    assert report.outcomes == []
    assert report.summary.total == 0


def test_stop_event_set_before_start(store):
    """Test a pass stopped up front processes nothing."""
    stop = threading.Event()
    stop.set()

    report = ReconciliationRunner(store).run(RunMode.APPLY, stop)

    assert report.outcomes == []
    assert report.summary.cancelled
    assert store.writes == 0


def test_stop_between_records(store, mixed_records):
    """Test stopping mid-pass keeps earlier writes and reports only processed zones."""
    stop = threading.Event()
    real_persist = store.persist

    def persist_then_stop(record: GeometryRecord) -> GeometryRecord:
        stored = real_persist(record)
        stop.set()
        return stored

    store.persist = persist_then_stop

    report = ReconciliationRunner(store).run(RunMode.APPLY, stop)

    # "valid" then "point" (persisted, which sets the stop event)
    assert [o.record_id for o in report.outcomes] == ["valid", "point"]
    assert report.summary.cancelled
    assert report.summary.total == 2
    assert store.get("point").geometry_type is GeometryType.POLYGON
    assert store.get("open").coordinates == OPEN_SQUARE


def test_parallel_pass_matches_sequential(mixed_records):
    """Test a thread pool pass produces the same outcomes in fetch order."""
    sequential = ReconciliationRunner(InMemoryZoneStore(mixed_records)).run(RunMode.APPLY)
    parallel_store = InMemoryZoneStore(mixed_records)
    parallel = ReconciliationRunner(
        parallel_store, config=RepairConfig(max_workers=4)
    ).run(RunMode.APPLY)

    assert [o.record_id for o in parallel.outcomes] == [o.record_id for o in sequential.outcomes]
    assert parallel.summary == sequential.summary
    assert parallel_store.writes == 3


def test_works_with_mock_store():
    """Test the runner only relies on the store protocol."""
    record = make_record("z1", coordinates=[1, 1])
    store = MagicMock()
    store.fetch_all.return_value = [record]
    store.persist.side_effect = lambda r: r

    report = ReconciliationRunner(store).run(RunMode.APPLY)

    store.persist.assert_called_once()
    persisted = store.persist.call_args[0][0]
    assert persisted.id == "z1"
    assert persisted.geometry_type is GeometryType.POLYGON
    assert report.summary.repaired == 1


def test_fix_zone_repairs_single_record(store):
    """Test fix_zone runs the heuristics on one zone and persists it."""
    outcome = ReconciliationRunner(store).fix_zone("open")

    assert outcome.diagnostic.status is DiagnosticStatus.REPAIRED
    assert outcome.persisted
    assert store.writes == 1
    assert store.get("open").coordinates == CLOSED_SQUARE


def test_fix_zone_override_persists_exact_coordinates(store):
    """Test a manual override is written exactly as supplied."""
    runner = ReconciliationRunner(store)

    outcome = runner.fix_zone("point", "[[[0,0],[1,0],[1,1],[0,1],[0,0]]]")

    assert outcome.persisted
    assert store.get("point").coordinates == [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]
    assert store.get("point").geometry_type is GeometryType.POLYGON
    assert len(store.get("point").coordinates[0]) == 5


def test_fix_zone_override_rejects_open_ring(store):
    """Test an open override is not persisted."""
    outcome = ReconciliationRunner(store).fix_zone("valid", "[[[0,0],[1,0],[1,1]]]")

    assert outcome.diagnostic.status is DiagnosticStatus.INVALID
    assert not outcome.persisted
    assert store.writes == 0


def test_fix_zone_dry_run(store):
    """Test fix_zone with dry_run never writes."""
    outcome = ReconciliationRunner(store).fix_zone("open", dry_run=True)

    assert outcome.diagnostic.status is DiagnosticStatus.REPAIRED
    assert not outcome.persisted
    assert store.writes == 0


def test_fix_zone_invalid_json(store):
    """Test malformed JSON is rejected before reading the store."""
    with pytest.raises(ValueError, match="not valid JSON"):
        ReconciliationRunner(store).fix_zone("open", "[[[0,0],")


def test_fix_zone_unknown_id(store):
    """Test an unknown id raises RecordNotFoundError."""
    with pytest.raises(RecordNotFoundError):
        ReconciliationRunner(store).fix_zone("nope")
