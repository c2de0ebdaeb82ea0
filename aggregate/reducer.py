"""
Cross-repository reduction of contributor ledgers.
Merging is field-wise addition with the empty ledger as identity, so snapshots can be
folded in any order or grouping.
"""
from typing import Iterable, Optional, Sequence

from .models import ContributorMetric, ContributorLedger, PeriodLedgers


def merge_metrics(left: ContributorLedger, right: ContributorLedger) -> ContributorLedger:
    """Return a new ledger holding the field-wise sum of `left` and `right`. Inputs are not modified."""
    merged: ContributorLedger = {identity: metric.copy() for identity, metric in left.items()}
    for identity, metric in right.items():
        merged[identity] = merged.get(identity, ContributorMetric()) + metric
    return merged


def _period_order(snapshots: Sequence[PeriodLedgers], periods: Optional[Iterable[str]]):
    if periods is not None:
        return list(periods)
    order = []
    for snapshot in snapshots:
        for label in snapshot.keys():
            if label not in order:
                order.append(label)
    return order


def reduce_snapshots(snapshots: Iterable[PeriodLedgers], periods: Optional[Iterable[str]] = None) -> PeriodLedgers:
    """
    Combine per-repository snapshots into one organization-wide report.

    Parameters:
        snapshots: per-repository mappings of period label -> ledger.
        periods: labels to include; every listed label appears in the result, empty if no snapshot has it.
            Defaults to the labels found in the snapshots, in first-seen order.
    """
    snapshots = list(snapshots)
    report: PeriodLedgers = {}
    for label in _period_order(snapshots, periods):
        total: ContributorLedger = {}
        for snapshot in snapshots:
            total = merge_metrics(total, snapshot.get(label) or {})
        report[label] = total
    return report
