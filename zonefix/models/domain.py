"""Core domain models for zone geometry reconciliation.

These models represent the zone records being checked and the diagnostics
produced for them, as immutable value objects separate from the ORM rows.

Includes models for:
- GeometryRecord (working copy of a stored zone)
- Issue and Diagnostic (validator output)
- RecordOutcome and RunSummary (reconciliation pass output)
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from zonefix.models.enums import (
    DiagnosticStatus,
    GeometryType,
    IssueCode,
    RecordState,
    RunMode,
)


class GeometryRecord(BaseModel):
    """A delivery zone as held by the zone store.

    Attributes:
        id: Opaque identifier assigned by the store
        title: Human label
        description: Optional free text
        geometry_type: Declared geometry type (None when the producer left it out)
        coordinates: Raw coordinates exactly as stored; may be malformed
        tax_rate: Zone tax rate
        active: Whether the zone is eligible for lookups
        version: Optimistic concurrency token, managed by the store
        created_at: Creation timestamp (store-managed)
        updated_at: Last update timestamp (store-managed)
        load_errors: Problems found when the stored row was loaded; a record
            carrying any is built without validation and is never repaired

    Note:
        Records are frozen. Repairs build a new working copy with
        ``model_copy(update=...)``; the fetched instance is never changed.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(description="Store-assigned zone identifier")
    title: str = Field(min_length=1, description="Zone label")
    description: str | None = Field(default=None, description="Free text")
    geometry_type: GeometryType | None = Field(default=None, description="Declared type")
    coordinates: Any = Field(default=None, description="Raw stored coordinates")
    tax_rate: float = Field(default=0.0, ge=0, description="Zone tax rate")
    active: bool = Field(default=True, description="Eligible for lookups")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency token")
    created_at: datetime | None = None
    updated_at: datetime | None = None
    load_errors: tuple[str, ...] = Field(default=(), description="Row load problems")


class Issue(BaseModel):
    """A single problem found on a zone.

    Attributes:
        code: Issue taxonomy code
        message: Human-readable description
        field: Record field the issue concerns
        resolved: True when the validator corrected it in fix mode
    """

    model_config = ConfigDict(frozen=True)

    code: IssueCode
    message: str
    field: str | None = None
    resolved: bool = False


class Diagnostic(BaseModel):
    """Validator verdict for one zone.

    Attributes:
        status: Valid, Repaired or Invalid
        issues: Every issue found, resolved or not
        fixes: Human-readable labels of the repairs applied
        shape: Name of the classified shape (None when coordinates were missing)
    """

    model_config = ConfigDict(frozen=True)

    status: DiagnosticStatus
    issues: list[Issue] = Field(default_factory=list)
    fixes: list[str] = Field(default_factory=list)
    shape: str | None = None

    @classmethod
    def from_issues(
        cls, issues: list[Issue], fixes: list[str], shape: str | None
    ) -> "Diagnostic":
        """Derive the final status from the collected issues."""
        if not issues:
            status = DiagnosticStatus.VALID
        elif all(issue.resolved for issue in issues):
            status = DiagnosticStatus.REPAIRED
        else:
            status = DiagnosticStatus.INVALID
        return cls(status=status, issues=issues, fixes=fixes, shape=shape)

    @property
    def issue_codes(self) -> list[IssueCode]:
        return [issue.code for issue in self.issues]

    @property
    def unresolved(self) -> list[Issue]:
        return [issue for issue in self.issues if not issue.resolved]


class RecordOutcome(BaseModel):
    """Result of reconciling one zone.

    Attributes:
        record_id: Zone identifier
        title: Zone label (for reporting)
        diagnostic: Validator verdict
        record: Working copy after validation (repaired in fix mode)
        states: States visited, in order
        persisted: True when the working copy was written back
        stored_active: Active flag as the store holds it after this record
        error: Store write failure, if any
    """

    model_config = ConfigDict(frozen=True)

    record_id: str
    title: str
    diagnostic: Diagnostic
    record: GeometryRecord
    states: list[RecordState]
    persisted: bool = False
    stored_active: bool = True
    error: str | None = None

    @property
    def final_state(self) -> RecordState:
        return self.states[-1]

    @property
    def failed(self) -> bool:
        return self.error is not None


class RunSummary(BaseModel):
    """Aggregate counts for one reconciliation pass.

    Attributes:
        mode: Pass mode
        total: Records processed
        repaired: Records repaired (or that would be, in dry-run)
        invalid: Records needing manual intervention
        unchanged: Records already valid
        failed: Records whose store write failed
        active: Processed records active in the store after the pass
        cancelled: True when the pass stopped early
    """

    model_config = ConfigDict(frozen=True)

    mode: RunMode
    total: int = 0
    repaired: int = 0
    invalid: int = 0
    unchanged: int = 0
    failed: int = 0
    active: int = 0
    cancelled: bool = False

    @property
    def malformed(self) -> int:
        """Records on which at least one issue was found."""
        return self.total - self.unchanged

    @classmethod
    def from_outcomes(
        cls, mode: RunMode, outcomes: list[RecordOutcome], cancelled: bool = False
    ) -> "RunSummary":
        """Reduce per-record outcomes into the pass summary."""
        counts = {DiagnosticStatus.VALID: 0, DiagnosticStatus.REPAIRED: 0, DiagnosticStatus.INVALID: 0}
        failed = 0
        for outcome in outcomes:
            if outcome.failed:
                failed += 1
                continue
            counts[outcome.diagnostic.status] += 1

        return cls(
            mode=mode,
            total=len(outcomes),
            repaired=counts[DiagnosticStatus.REPAIRED],
            invalid=counts[DiagnosticStatus.INVALID],
            unchanged=counts[DiagnosticStatus.VALID],
            failed=failed,
            active=sum(1 for outcome in outcomes if outcome.stored_active),
            cancelled=cancelled,
        )
