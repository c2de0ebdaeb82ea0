"""
Report pipeline: periods -> fetch -> accumulate -> reduce, across every repository of an organization.
Work is split into one unit per (repository, period) and run on a bounded thread pool.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_EXCEPTION, ALL_COMPLETED
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from aggregate.models import ContributorLedger, PeriodLedgers
from aggregate.periods import generate_periods, format_timestamp
from aggregate.reducer import reduce_snapshots
from scoring.metrics import accumulate_payloads

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class ReportRun:
    """
    Result of one report run.

    `failed_repositories` maps each excluded repository to the error that excluded it;
    their activity is absent from `report`.
    """
    def __init__(self, org: str, periods: List[Tuple[str, str]], report: PeriodLedgers, repositories: List[str], failed_repositories: Dict[str, str], generated_at: str):
        self.org = org
        self.periods = periods
        self.report = report
        self.repositories = repositories
        self.failed_repositories = failed_repositories
        self.generated_at = generated_at

    @property
    def included_repositories(self) -> List[str]:
        return [r for r in self.repositories if r not in self.failed_repositories]

    @property
    def period_labels(self) -> List[str]:
        return [label for label, _ in self.periods]


def build_period_ledger(client, owner: str, repo: str, since: str, weights: Optional[Dict[str, float]] = None, identity_policy: Optional[str] = None) -> ContributorLedger:
    """Fetch one repository's commits and pull requests since `since` and accumulate them."""
    commits = client.fetch_commits(owner, repo, since)
    pull_requests = client.fetch_pull_requests(owner, repo, since)
    return accumulate_payloads(commits, pull_requests, weights=weights, identity_policy=identity_policy)


def build_repository_snapshot(client, owner: str, repo: str, periods: List[Tuple[str, str]], weights: Optional[Dict[str, float]] = None, identity_policy: Optional[str] = None) -> PeriodLedgers:
    """Return one repository's period -> ledger snapshot, fetching each period independently."""
    return {label: build_period_ledger(client, owner, repo, since, weights, identity_policy) for label, since in periods}


def _describe(ex: BaseException) -> str:
    return f"{type(ex).__name__}: {ex}"


def _first_error(futures) -> Optional[BaseException]:
    for fut in futures:
        if not fut.cancelled() and fut.exception() is not None:
            return fut.exception()
    return None


class _Progress:
    def __init__(self, repositories: List[str], units_per_repo: int):
        self.remaining = {r: units_per_repo for r in repositories}
        self.total = len(repositories)
        self.finished = 0

    def unit_done(self, repo: str):
        self.remaining[repo] -= 1
        if self.remaining[repo] == 0:
            self.finished += 1
            logger.info("Processed %d/%d repositories (%s)", self.finished, self.total, repo)


def run_report(
    client,
    org: str,
    repositories: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
    clock: Optional[Callable[[], datetime]] = None,
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    fail_fast: bool = False,
    weights: Optional[Dict[str, float]] = None,
    identity_policy: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ReportRun:
    """
    Compute the organization-wide report.

    Parameters:
        client: fetcher exposing list_repositories / fetch_commits / fetch_pull_requests (see ingest.github.GitHubClient).
        org (str): organization that owns the repositories.
        repositories: repository names to process; listed from the organization when omitted.
        now / clock: end of every reporting window (defaults to the current UTC time).
        max_workers (int): cap on concurrent (repository, period) units.
        cancel_event (threading.Event): set to abort pending work and rate-limit cooldowns.
        fail_fast (bool): re-raise the first unit failure instead of excluding the repository.
        timeout (float): seconds after which the run is cancelled; unfinished repositories are excluded.

    Returns:
        ReportRun: the reduced report plus the repositories that were excluded and why.
    """
    cancel_event = cancel_event or threading.Event()
    if hasattr(client, 'with_cancel_event'):
        client = client.with_cancel_event(cancel_event)

    if now is None:
        now = (clock or (lambda: datetime.now(timezone.utc)))()
    periods = generate_periods(now=now)
    repos = list(repositories) if repositories is not None else client.list_repositories(org)
    logger.info("Computing metrics for %d repositories in %s", len(repos), org)

    snapshots: Dict[str, PeriodLedgers] = {r: {} for r in repos}
    failures: Dict[str, str] = {}
    progress = _Progress(repos, len(periods))

    executor = ThreadPoolExecutor(max_workers=max_workers or DEFAULT_MAX_WORKERS)
    timed_out = False
    try:
        futures = {}
        for repo in repos:
            for label, since in periods:
                fut = executor.submit(build_period_ledger, client, org, repo, since, weights, identity_policy)
                futures[fut] = (repo, label)

        done, not_done = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION if fail_fast else ALL_COMPLETED)
        first_error = _first_error(done) if fail_fast else None
        if not_done:
            timed_out = first_error is None
            if timed_out:
                logger.warning("Report run exceeded %ss; cancelling %d unfinished unit(s)", timeout, len(not_done))
            cancel_event.set()
            for fut in not_done:
                fut.cancel()
        if first_error is not None:
            raise first_error

        for fut, (repo, label) in futures.items():
            if fut.cancelled():
                failures.setdefault(repo, "cancelled before completion")
                continue
            if fut in not_done and not fut.done():
                # still running; the client may not observe the cancel event, so do not wait on it
                failures.setdefault(repo, f"did not finish within {timeout}s")
                continue
            try:
                snapshots[repo][label] = fut.result()
            except Exception as ex:
                if fail_fast:
                    cancel_event.set()
                    raise
                failures.setdefault(repo, _describe(ex))
                continue
            progress.unit_done(repo)
    finally:
        executor.shutdown(wait=not timed_out)

    for repo, reason in failures.items():
        logger.warning("Excluding repository %s from the report: %s", repo, reason)

    report = reduce_snapshots([snapshots[r] for r in repos if r not in failures], periods=[label for label, _ in periods])
    return ReportRun(
        org=org,
        periods=periods,
        report=report,
        repositories=repos,
        failed_repositories=failures,
        generated_at=format_timestamp(now),
    )
