"""Base report writer interface for reconciliation results."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from zonefix.models.domain import RecordOutcome


@runtime_checkable
class ReportWriter(Protocol):
    """Protocol for writers that export per-zone outcomes to a file.

    Writers are separate from the runner: the runner returns RecordOutcome
    models and the caller decides whether and where to export them.
    """

    def write(self, outcomes: list[RecordOutcome], output_path: Path) -> Path:
        """Write reconciliation outcomes to a file.

        Args:
            outcomes: Per-zone outcomes from a pass
            output_path: Path where the report should be written

        Returns:
            Path to the written report

        Raises:
            OSError: If writing fails
        """
        ...
