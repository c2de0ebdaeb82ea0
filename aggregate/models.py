"""
Contributor ledger types.
"""
from typing import Dict

UNKNOWN_IDENTITY = "Unknown"

# scores keep this many significant digits, so sums do not depend on the order of the terms
# while arbitrarily small weights still register
SCORE_SIGNIFICANT_DIGITS = 12


def normalize_score(value: float) -> float:
    return float(f"{float(value):.{SCORE_SIGNIFICANT_DIGITS}g}")


def add_scores(a: float, b: float) -> float:
    return normalize_score(float(a) + float(b))


class ContributorMetric:
    """
    Activity counters and weighted score for one contributor.
    Counters only ever grow while a ledger is being built.
    """

    __slots__ = ('commits', 'pull_requests', 'reviews', 'score')

    def __init__(self, commits: int = 0, pull_requests: int = 0, reviews: int = 0, score: float = 0.0):
        if commits < 0 or pull_requests < 0 or reviews < 0 or score < 0:
            raise ValueError("ContributorMetric fields must be non-negative")
        self.commits = int(commits)
        self.pull_requests = int(pull_requests)
        self.reviews = int(reviews)
        self.score = normalize_score(score)

    def copy(self) -> 'ContributorMetric':
        return ContributorMetric(self.commits, self.pull_requests, self.reviews, self.score)

    def __add__(self, other: 'ContributorMetric') -> 'ContributorMetric':
        if not isinstance(other, ContributorMetric):
            return NotImplemented
        return ContributorMetric(
            self.commits + other.commits,
            self.pull_requests + other.pull_requests,
            self.reviews + other.reviews,
            add_scores(self.score, other.score),
        )

    def __eq__(self, other):
        if not isinstance(other, ContributorMetric):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    # counters are updated in place while a ledger is built
    __hash__ = None

    def __repr__(self):
        return (
            f"ContributorMetric(commits={self.commits}, pull_requests={self.pull_requests}, "
            f"reviews={self.reviews}, score={self.score})"
        )

    def as_tuple(self):
        return (self.commits, self.pull_requests, self.reviews, self.score)

    def to_dict(self) -> Dict[str, float]:
        return {
            'commits': self.commits,
            'pull_requests': self.pull_requests,
            'reviews': self.reviews,
            'score': self.score,
        }


# identity -> metric
ContributorLedger = Dict[str, ContributorMetric]
# period label -> ledger; used both for one repository's snapshot and for the organization-wide report
PeriodLedgers = Dict[str, ContributorLedger]
