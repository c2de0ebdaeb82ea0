"""
In-memory stand-in for ingest.github.GitHubClient used by pipeline and CLI tests.
"""
import threading
from datetime import datetime

from ingest.github import GitHubAPIError
from ingest.retry import FetchCancelled


def _ts(value):
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def commit(login, date, sha=None):
    return {'sha': sha or f"{login}-{date}", 'author': {'login': login} if login else None, 'commit': {'author': {'date': date}}}


def pull(login, created_at, number, reviewers=()):
    return {
        'number': number,
        'user': {'login': login},
        'created_at': created_at,
        'merged_at': None,
        'requested_reviewers': [{'login': r} for r in reviewers],
    }


class FakeGitHubClient:
    """Serves canned commits and pull requests, applying the `since` window like the real fetcher."""

    def __init__(self, repos, failing=None, hanging=()):
        self.repos = repos  # name -> {'commits': [...], 'pulls': [...]}
        self.failing = failing or {}  # name -> status code
        self.hanging = set(hanging)
        self.cancel_event = None
        self.calls = []
        self._lock = threading.Lock()

    def with_cancel_event(self, cancel_event):
        self.cancel_event = cancel_event
        return self

    def list_repositories(self, org):
        return list(self.repos) + [r for r in self.failing if r not in self.repos]

    def _check(self, repo):
        if repo in self.hanging:
            # behaves like a rate-limit cooldown that only a cancellation ends
            if self.cancel_event.wait(10):
                raise FetchCancelled(f"cancelled while fetching {repo}")
        if repo in self.failing:
            raise GitHubAPIError(self.failing[repo], f"https://api.github.com/repos/org/{repo}", {'message': 'Server Error'})

    def fetch_commits(self, owner, repo, since):
        with self._lock:
            self.calls.append(('commits', repo, since))
        self._check(repo)
        return [c for c in self.repos.get(repo, {}).get('commits', []) if _ts(c['commit']['author']['date']) >= _ts(since)]

    def fetch_pull_requests(self, owner, repo, since):
        with self._lock:
            self.calls.append(('pulls', repo, since))
        self._check(repo)
        return [p for p in self.repos.get(repo, {}).get('pulls', []) if _ts(p['created_at']) >= _ts(since)]
