"""
Rate-limit detection and cooldown policy for paginated GitHub fetches.
A rate-limited page is retried after a fixed cooldown; the wait is bounded by a retry cap
and can be aborted through a run-level cancellation event.
"""

import os
import time
import logging
import threading
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


def _env_optional_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    if raw.strip().lower() in ('none', 'unbounded'):
        return None
    return int(raw)


# cooldown/retry defaults from environment
# - GHMETRICS_RATE_LIMIT_COOLDOWN: float seconds to wait after a rate-limit response
# - GHMETRICS_MAX_RATE_LIMIT_RETRIES: int, or "none" for no cap (cancellation still applies)
DEFAULT_COOLDOWN_SECONDS = float(os.getenv("GHMETRICS_RATE_LIMIT_COOLDOWN", "60"))
DEFAULT_MAX_RETRIES = _env_optional_int("GHMETRICS_MAX_RATE_LIMIT_RETRIES", 10)

# runtime-overrides
_UNSET = object()
_runtime_cooldown: Optional[float] = None
_runtime_max_retries: Any = _UNSET


def configure_retry(cooldown_seconds: Optional[float] = None, max_retries: Any = _UNSET):
    """Configure cooldown/retry defaults at runtime (e.g. from CLI).

    Pass max_retries=None explicitly for an uncapped policy.
    """
    global _runtime_cooldown, _runtime_max_retries
    if cooldown_seconds is not None:
        _runtime_cooldown = float(cooldown_seconds)
    if max_retries is not _UNSET:
        _runtime_max_retries = None if max_retries is None else int(max_retries)


def reset_retry_configuration():
    global _runtime_cooldown, _runtime_max_retries
    _runtime_cooldown = None
    _runtime_max_retries = _UNSET


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return float(raw_ra)
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(raw_ra)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _safe_int_from_headers(headers: Dict[str, Any], key: str) -> Optional[int]:
    try:
        val = headers.get(key)
        return int(val) if val is not None else None
    except (TypeError, ValueError):
        return None


def is_rate_limited(status_code: int, headers: Optional[Dict[str, Any]]) -> bool:
    """Return True when a response signals upstream throttling.

    GitHub answers 429 for secondary limits and 403 with an exhausted quota (or a Retry-After) for primary ones.
    """
    headers = headers or {}
    if status_code == 429:
        return True
    if status_code != 403:
        return False
    if _parse_retry_after(headers.get('Retry-After')) is not None:
        return True
    remaining = _safe_int_from_headers(headers, 'X-RateLimit-Remaining')
    return remaining is not None and remaining <= 0


class FetchCancelled(Exception):
    """Raised when the run-level cancellation event is set during a cooldown wait."""


class RateLimitPolicy:
    """
    Explicit retry policy for rate-limited page requests.

    Parameters:
        cooldown_seconds (float): fixed wait between attempts on the same page.
        max_retries (int | None): cooldowns allowed per page; None removes the cap.
        cancel_event (threading.Event | None): when set, pending and future waits abort with FetchCancelled.
    """

    def __init__(self, cooldown_seconds: Optional[float] = None, max_retries: Any = _UNSET, cancel_event: Optional[threading.Event] = None):
        if cooldown_seconds is None:
            cooldown_seconds = _runtime_cooldown if _runtime_cooldown is not None else DEFAULT_COOLDOWN_SECONDS
        if max_retries is _UNSET:
            max_retries = _runtime_max_retries if _runtime_max_retries is not _UNSET else DEFAULT_MAX_RETRIES
        self.cooldown_seconds = float(cooldown_seconds)
        self.max_retries = None if max_retries is None else int(max_retries)
        self.cancel_event = cancel_event

    def allows(self, attempt: int) -> bool:
        """Return True if another cooldown is allowed after `attempt` rate-limited responses."""
        return self.max_retries is None or attempt <= self.max_retries

    def check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise FetchCancelled("fetch cancelled")

    def wait(self, url: str, attempt: int):
        """Block for one cooldown, or raise FetchCancelled if the run is cancelled first."""
        self.check_cancelled()
        logger.warning("Rate limited on %s; cooling down %.0fs (attempt %d)", url, self.cooldown_seconds, attempt)
        if self.cancel_event is not None:
            if self.cancel_event.wait(self.cooldown_seconds):
                raise FetchCancelled(f"fetch cancelled during rate-limit cooldown for {url}")
            return
        time.sleep(self.cooldown_seconds)


__all__ = ["configure_retry", "reset_retry_configuration", "is_rate_limited", "RateLimitPolicy", "FetchCancelled"]
