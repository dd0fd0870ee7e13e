"""Console report for reconciliation passes.

Formats per-zone diagnostics and the end-of-pass summary table. The
formatter only builds lines; the CLI decides where they are printed.
"""

import pandas as pd

from zonefix.models.domain import RecordOutcome, RunSummary
from zonefix.models.enums import DiagnosticStatus, RunMode


class ReportFormatter:
    """Builds the text printed by the CLI commands."""

    def record_lines(self, outcome: RecordOutcome, mode: RunMode) -> list[str]:
        """Lines describing one zone's outcome.

        Valid zones get a single line. Repaired zones list their fixes
        ("would fix" in dry-run), invalid zones list every unresolved issue.
        """
        diagnostic = outcome.diagnostic
        label = f"{outcome.record_id} ({outcome.title})"

        if outcome.failed:
            return [f"FAILED    {label}: {outcome.error}"]

        if diagnostic.status is DiagnosticStatus.VALID:
            if diagnostic.fixes:
                # Manual override: accepted as supplied
                verb = "would set" if mode is RunMode.DRY_RUN else "set"
                return [f"VALID     {label}: {verb} {', '.join(diagnostic.fixes)}"]
            return [f"VALID     {label}"]

        if diagnostic.status is DiagnosticStatus.REPAIRED:
            verb = "would fix" if mode is RunMode.DRY_RUN else "fixed"
            return [f"REPAIRED  {label}: {verb} {', '.join(diagnostic.fixes)}"]

        lines = [f"INVALID   {label}: needs manual fix"]
        issues = diagnostic.issues if mode is RunMode.VERIFY else diagnostic.unresolved
        lines.extend(f"    - {issue.code}: {issue.message}" for issue in issues)
        return lines

    def summary_lines(self, summary: RunSummary, mode: RunMode) -> list[str]:
        """Summary table for the pass.

        Verify passes report active / valid / invalid; apply and dry-run
        passes report total / repaired / invalid / unchanged / failed.
        """
        if mode is RunMode.VERIFY:
            counts = {
                "total": summary.total,
                "active": summary.active,
                "valid": summary.unchanged,
                "invalid": summary.invalid,
            }
        else:
            counts = {
                "total": summary.total,
                "would fix" if mode is RunMode.DRY_RUN else "repaired": summary.repaired,
                "invalid": summary.invalid,
                "unchanged": summary.unchanged,
                "failed": summary.failed,
                "active": summary.active,
            }

        table = pd.DataFrame({"zones": list(counts.values())}, index=list(counts.keys()))
        lines = [f"Summary ({mode.value})", *table.to_string().splitlines()]
        if summary.cancelled:
            lines.append("Pass cancelled before all zones were processed")
        return lines
