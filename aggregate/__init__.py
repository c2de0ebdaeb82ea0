"""
Aggregate package: ledger types, reporting periods and cross-repository reduction.
"""

from .models import ContributorMetric, UNKNOWN_IDENTITY
from .periods import generate_periods, PERIODS
from .reducer import merge_metrics, reduce_snapshots

__all__ = ["ContributorMetric", "UNKNOWN_IDENTITY", "generate_periods", "PERIODS", "merge_metrics", "reduce_snapshots"]
