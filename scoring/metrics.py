"""
Contributor accumulator.
Folds one repository's commits and pull requests for one period into a contributor ledger.
"""
from typing import Callable, Dict, Iterable, List, Any, Optional
from normalize.models import RawCommit, RawPullRequest
from normalize.util import normalize_commits, normalize_pull_requests
from aggregate.models import ContributorMetric, ContributorLedger, UNKNOWN_IDENTITY, normalize_score
from .utils import DEFAULT_WEIGHTS, resolve_identity_policy


def _resolve_identity(login: Optional[str], normalize: Callable[[str], str]) -> str:
    if not login:
        return UNKNOWN_IDENTITY
    return normalize(login)


def _count(tally: ContributorLedger, identity: str, field: str):
    metric = tally.get(identity)
    if metric is None:
        metric = tally[identity] = ContributorMetric()
    setattr(metric, field, getattr(metric, field) + 1)


def _weighted_score(metric: ContributorMetric, w: Dict[str, float]) -> float:
    return normalize_score(metric.commits * w['commit'] + metric.pull_requests * w['pull_request'] + metric.reviews * w['review'])


def accumulate_into(
    ledger: ContributorLedger,
    commits: Iterable[RawCommit],
    pull_requests: Iterable[RawPullRequest],
    weights: Optional[Dict[str, float]] = None,
    identity_policy: Optional[str] = None,
) -> ContributorLedger:
    """
    Return a new ledger with `commits` and `pull_requests` folded onto a copy of `ledger`.

    - commit: author gets +1 commit and the `commit` weight
    - pull request: author gets +1 pull request and the `pull_request` weight
    - every requested reviewer gets +1 review and the `review` weight, even when they authored the PR

    Scores are computed once from the counts, so they do not depend on record order.
    Missing authors are credited to "Unknown". Records are trusted to be inside the period already;
    no timestamp is re-checked here.
    """
    w = dict(DEFAULT_WEIGHTS)
    w.update(weights or {})
    normalize = resolve_identity_policy(identity_policy)

    tally: ContributorLedger = {}
    for commit in commits or []:
        _count(tally, _resolve_identity(commit.author, normalize), 'commits')
    for pr in pull_requests or []:
        _count(tally, _resolve_identity(pr.author, normalize), 'pull_requests')
        for reviewer in pr.requested_reviewers:
            _count(tally, _resolve_identity(reviewer, normalize), 'reviews')

    result: ContributorLedger = {identity: metric.copy() for identity, metric in ledger.items()}
    for identity, counted in tally.items():
        counted.score = _weighted_score(counted, w)
        base = result.get(identity)
        result[identity] = counted if base is None else base + counted
    return result


def accumulate(
    commits: Iterable[RawCommit],
    pull_requests: Iterable[RawPullRequest],
    weights: Optional[Dict[str, float]] = None,
    identity_policy: Optional[str] = None,
) -> ContributorLedger:
    """Build a contributor ledger from scratch. Processing order does not affect the result."""
    return accumulate_into({}, commits, pull_requests, weights=weights, identity_policy=identity_policy)


def accumulate_payloads(
    raw_commits: List[Dict[str, Any]],
    raw_pull_requests: List[Dict[str, Any]],
    weights: Optional[Dict[str, float]] = None,
    identity_policy: Optional[str] = None,
) -> ContributorLedger:
    """Normalize GitHub JSON payloads and accumulate them."""
    return accumulate(
        normalize_commits(raw_commits),
        normalize_pull_requests(raw_pull_requests),
        weights=weights,
        identity_policy=identity_policy,
    )
