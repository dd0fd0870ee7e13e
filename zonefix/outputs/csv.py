"""CSV report of per-zone reconciliation outcomes."""

import logging
from pathlib import Path

import pandas as pd

from zonefix.models.domain import RecordOutcome

logger = logging.getLogger(__name__)

COLUMNS = [
    "id",
    "title",
    "status",
    "shape",
    "issues",
    "unresolved",
    "fixes",
    "persisted",
    "active",
    "error",
    "final_state",
]


class CSVReportWriter:
    """Writes one CSV row per zone.

    Multi-valued columns (issues, unresolved, fixes) are joined with "; ".
    An empty pass still produces a file with the header row.
    """

    def write(self, outcomes: list[RecordOutcome], output_path: Path) -> Path:
        """Write outcomes to a CSV file.

        Args:
            outcomes: Per-zone outcomes from a pass
            output_path: Path where the CSV file should be written

        Returns:
            Path to the written CSV file
        """
        rows = [self._outcome_to_row(outcome) for outcome in outcomes]
        df = pd.DataFrame(rows, columns=COLUMNS)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_path, index=False)

        logger.info(f"Wrote {len(df)} row(s) to {output_path}")
        return output_path

    @staticmethod
    def _outcome_to_row(outcome: RecordOutcome) -> dict:
        diagnostic = outcome.diagnostic
        return {
            "id": outcome.record_id,
            "title": outcome.title,
            "status": diagnostic.status.value,
            "shape": diagnostic.shape or "",
            "issues": "; ".join(code.value for code in diagnostic.issue_codes),
            "unresolved": "; ".join(issue.code.value for issue in diagnostic.unresolved),
            "fixes": "; ".join(diagnostic.fixes),
            "persisted": outcome.persisted,
            "active": outcome.stored_active,
            "error": outcome.error or "",
            "final_state": outcome.final_state.value,
        }
