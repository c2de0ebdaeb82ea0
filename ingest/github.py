"""
GitHub REST client for the metrics engine.
Walks fixed-size pages until an empty page, treating 409 as "no content" and cooling down on rate limits.
"""
import os
import logging
import threading
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
import requests

from ingest.retry import RateLimitPolicy, FetchCancelled, is_rate_limited

logger = logging.getLogger(__name__)

PER_PAGE = 100
DEFAULT_REQUEST_TIMEOUT = float(os.getenv("GHMETRICS_REQUEST_TIMEOUT", "30"))

RESOURCE_COMMITS = 'commits'
RESOURCE_PULLS = 'pulls'


class GitHubAPIError(Exception):
    """Unclassified GitHub API failure. `partial` holds the items fetched before the failing page."""

    def __init__(self, status: int, url: str, body: Any = None, partial: Optional[List[Dict[str, Any]]] = None):
        self.status = status
        self.url = url
        self.body = body
        self.partial = partial or []
        super().__init__(f"GitHub API request failed ({status}) for {url}: {self._message()}")

    def _message(self) -> str:
        if isinstance(self.body, dict):
            return str(self.body.get('message') or self.body)
        return str(self.body or '')


class RateLimitExhausted(GitHubAPIError):
    """The rate-limit policy ran out of retries for one page."""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        logger.debug("Ignoring unparsable timestamp %r", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _response_body(resp):
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, 'text', None)


class GitHubClient:
    """GitHub client that fetches complete commit and pull-request lists for a repository."""

    def __init__(self, token: str, base_url: str = None, policy: Optional[RateLimitPolicy] = None, timeout: Optional[float] = None):
        self.token = token
        self.base_url = (base_url or "https://api.github.com").rstrip('/')
        self.headers = {
            "Authorization": f"Bearer {self.token}" if self.token else "",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.policy = policy or RateLimitPolicy()
        self.timeout = timeout if timeout is not None else DEFAULT_REQUEST_TIMEOUT

    def with_cancel_event(self, cancel_event: threading.Event) -> 'GitHubClient':
        """Return a client sharing this one's settings whose cooldowns observe `cancel_event`."""
        policy = RateLimitPolicy(self.policy.cooldown_seconds, self.policy.max_retries, cancel_event)
        client = GitHubClient(self.token, self.base_url, policy=policy, timeout=self.timeout)
        client.headers = dict(self.headers)
        return client

    def _get_page(self, url: str, params: Dict[str, Any], collected: List[Dict[str, Any]]):
        """GET one page, retrying the same page while rate limited.

        Returns the decoded JSON list, or None when GitHub answers 409 (empty repository / nothing before cutoff).
        """
        attempt = 0
        while True:
            self.policy.check_cancelled()
            resp = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
            status = resp.status_code
            if status == 200:
                return resp.json()
            if status == 409:
                return None
            headers = getattr(resp, 'headers', {}) or {}
            if is_rate_limited(status, headers):
                attempt += 1
                if not self.policy.allows(attempt):
                    raise RateLimitExhausted(status, url, _response_body(resp), partial=collected)
                self.policy.wait(url, attempt)
                continue
            raise GitHubAPIError(status, url, _response_body(resp), partial=collected)

    def _paginate(self, url: str, params: Dict[str, Any], empty_message: str) -> List[Dict[str, Any]]:
        """Walk pages in increasing order until an empty page and return all items in upstream order."""
        page = 1
        items: List[Dict[str, Any]] = []
        while True:
            page_params = dict(params, page=page, per_page=PER_PAGE)
            try:
                data = self._get_page(url, page_params, items)
            except (requests.RequestException, FetchCancelled) as ex:
                # same exception object, now carrying the pages fetched so far
                ex.partial = list(items)
                raise
            if data is None:
                logger.info(empty_message)
                break
            logger.debug("Fetched %d item(s) from %s page %d", len(data), url, page)
            if not data:
                break
            items.extend(data)
            page += 1
        return items

    def list_repositories(self, org: str) -> List[str]:
        """Return the names of all repositories owned by `org`."""
        url = f"{self.base_url}/orgs/{org}/repos"
        repos = self._paginate(url, {}, f"Organization {org} has no repositories")
        return [r.get('name') for r in repos if isinstance(r, dict) and r.get('name')]

    def fetch_commits(self, owner: str, repo: str, since: str) -> List[Dict[str, Any]]:
        """Return every commit on the default branch of owner/repo since `since` (inclusive)."""
        url = f"{self.base_url}/repos/{owner}/{repo}/commits"
        return self._paginate(url, {"since": since}, f"Repository {repo} is empty or has no commits since {since}")

    def fetch_pull_requests(self, owner: str, repo: str, since: str) -> List[Dict[str, Any]]:
        """Return pull requests in any state created at or after `since`.

        The pulls endpoint ignores `since`, so the window is applied here on `created_at`.
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/pulls"
        prs = self._paginate(url, {"state": "all", "since": since}, f"Repository {repo} is empty or has no pull requests since {since}")
        cutoff = _parse_timestamp(since)
        if cutoff is None:
            return prs
        scoped = []
        for pr in prs:
            created = _parse_timestamp(pr.get('created_at')) if isinstance(pr, dict) else None
            if created is None or created >= cutoff:
                scoped.append(pr)
        return scoped

    def fetch_resource(self, owner: str, repo: str, kind: str, since: str) -> List[Dict[str, Any]]:
        if kind == RESOURCE_COMMITS:
            return self.fetch_commits(owner, repo, since)
        if kind == RESOURCE_PULLS:
            return self.fetch_pull_requests(owner, repo, since)
        raise ValueError(f"Unknown resource kind: {kind}")


__all__ = [
    "GitHubClient",
    "GitHubAPIError",
    "RateLimitExhausted",
    "FetchCancelled",
    "RESOURCE_COMMITS",
    "RESOURCE_PULLS",
    "PER_PAGE",
]
