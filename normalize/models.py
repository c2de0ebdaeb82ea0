"""
Narrow input records for the metrics engine.
Only the fields the accumulator reads are kept; the rest of the GitHub payload is dropped.
"""

from typing import List, Optional


class RawCommit:
    """
    A commit as seen by the accumulator.
    """
    def __init__(self, author: Optional[str], sha: str = '', authored_at: Optional[str] = None):
        self.author = author  # GitHub login, None when the commit is not linked to an account
        self.sha = sha
        self.authored_at = authored_at

    def __repr__(self):
        return f"RawCommit(author={self.author!r}, sha={self.sha!r})"


class RawPullRequest:
    """
    A pull request as seen by the accumulator.
    """
    def __init__(self, author: Optional[str], number: Optional[int] = None, created_at: Optional[str] = None, merged_at: Optional[str] = None, requested_reviewers: Optional[List[str]] = None):
        self.author = author
        self.number = number
        self.created_at = created_at
        self.merged_at = merged_at
        self.requested_reviewers = requested_reviewers or []

    def __repr__(self):
        return f"RawPullRequest(author={self.author!r}, number={self.number!r}, requested_reviewers={self.requested_reviewers!r})"
