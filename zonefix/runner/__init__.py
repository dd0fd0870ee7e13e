"""Reconciliation pass infrastructure.

This package provides the runner for reconciliation passes over the zone store:
- ReconciliationRunner.run(): batch pass in apply, dry-run or verify mode
- ReconciliationRunner.fix_zone(): single-zone repair or manual override
"""

from zonefix.runner.reconciliation import ReconciliationRunner, RunReport

__all__ = [
    "ReconciliationRunner",
    "RunReport",
]
