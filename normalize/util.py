"""
Normalization helpers.
Convert raw GitHub REST payloads into the narrow records in normalize.models.
"""
from typing import Dict, Any, List, Optional
from normalize.models import RawCommit, RawPullRequest


def _login(obj: Any) -> Optional[str]:
    """Return the login of a GitHub user object, or None if absent."""
    if not isinstance(obj, dict):
        return None
    return obj.get('login') or None


def normalize_commit(raw: Dict[str, Any]) -> RawCommit:
    """Create a RawCommit from a `GET /repos/{owner}/{repo}/commits` item.

    `author` is the linked GitHub account; commits made with an unlinked email have `author: null`.
    """
    commit = raw.get('commit') or {}
    authored_at = (commit.get('author') or {}).get('date')
    return RawCommit(author=_login(raw.get('author')), sha=raw.get('sha') or '', authored_at=authored_at)


def _reviewer_logins(raw: Dict[str, Any]) -> List[str]:
    logins = []
    for reviewer in raw.get('requested_reviewers') or []:
        login = _login(reviewer)
        if login:
            logins.append(login)
    return logins


def normalize_pull_request(raw: Dict[str, Any]) -> RawPullRequest:
    """Create a RawPullRequest from a `GET /repos/{owner}/{repo}/pulls` item."""
    return RawPullRequest(
        author=_login(raw.get('user')),
        number=raw.get('number'),
        created_at=raw.get('created_at'),
        merged_at=raw.get('merged_at'),
        requested_reviewers=_reviewer_logins(raw),
    )


def normalize_commits(items: List[Dict[str, Any]]) -> List[RawCommit]:
    return [normalize_commit(item) for item in items or [] if isinstance(item, dict)]


def normalize_pull_requests(items: List[Dict[str, Any]]) -> List[RawPullRequest]:
    return [normalize_pull_request(item) for item in items or [] if isinstance(item, dict)]
