"""Output of reconciliation results.

Provides the console report (ReportFormatter) and the CSV export
(CSVReportWriter) used by the CLI's --report option.
"""

from zonefix.outputs.base import ReportWriter
from zonefix.outputs.csv import CSVReportWriter
from zonefix.outputs.report import ReportFormatter

__all__ = [
    "ReportWriter",
    "CSVReportWriter",
    "ReportFormatter",
]
