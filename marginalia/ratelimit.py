"""Blocking clients after repeated failed authentication attempts."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

DEFAULT_FAILURE_LIMIT = 5
DEFAULT_FAILURE_WINDOW = timedelta(minutes=1)
DEFAULT_BLOCK_DURATION = timedelta(minutes=10)
DEFAULT_CLEANUP_INTERVAL = timedelta(minutes=1)


@dataclass
class _Attempt:
    window_start: Optional[datetime] = None
    failures: int = 0
    blocked_until: Optional[datetime] = None
    last_seen: Optional[datetime] = None


class FailedAuthLimiter:
    """Counts failures per client and blocks those that exceed the limit."""

    def __init__(self, failure_limit: int, window: timedelta, block_duration: timedelta) -> None:
        self.failure_limit = failure_limit
        self.window = window
        self.block_duration = block_duration
        self.cleanup_interval = DEFAULT_CLEANUP_INTERVAL
        self.entry_ttl = window + block_duration
        self._attempts: dict[str, _Attempt] = {}
        self._last_cleanup: Optional[datetime] = None
        self._lock = threading.Lock()

    def blocked(self, client_id: str, now: datetime) -> tuple[Optional[datetime], bool]:
        """Return (blocked_until, True) while the client is blocked."""
        with self._lock:
            self._cleanup(now)
            attempt = self._attempts.setdefault(client_id, _Attempt())
            return self._resolve_block(attempt, now)

    def check_and_record(self, client_id: str, now: datetime) -> tuple[Optional[datetime], bool]:
        """Record a failure; return (blocked_until, True) if the client is now blocked."""
        with self._lock:
            self._cleanup(now)
            attempt = self._attempts.setdefault(client_id, _Attempt())

            blocked_until, blocked = self._resolve_block(attempt, now)
            if blocked:
                return blocked_until, True

            if attempt.window_start is None or now - attempt.window_start > self.window:
                attempt.window_start = now
                attempt.failures = 0
            attempt.failures += 1
            attempt.last_seen = now
            if attempt.failures >= self.failure_limit:
                attempt.blocked_until = now + self.block_duration
            until = attempt.blocked_until
            return until, until is not None and until > now

    @staticmethod
    def _resolve_block(attempt: _Attempt, now: datetime) -> tuple[Optional[datetime], bool]:
        if attempt.blocked_until is not None and attempt.blocked_until > now:
            attempt.last_seen = now
            return attempt.blocked_until, True
        if attempt.blocked_until is not None:
            attempt.blocked_until = None
            attempt.failures = 0
            attempt.window_start = None
            attempt.last_seen = now
        return None, False

    def _cleanup(self, now: datetime) -> None:
        if self._last_cleanup is None:
            self._last_cleanup = now
            return
        if now - self._last_cleanup < self.cleanup_interval:
            return
        stale = [
            client_id
            for client_id, attempt in self._attempts.items()
            if attempt.last_seen is None or now - attempt.last_seen > self.entry_ttl
        ]
        for client_id in stale:
            del self._attempts[client_id]
        self._last_cleanup = now


def default_failed_auth_limiter() -> FailedAuthLimiter:
    """A limiter allowing five failures a minute, then blocking ten minutes."""
    return FailedAuthLimiter(DEFAULT_FAILURE_LIMIT, DEFAULT_FAILURE_WINDOW, DEFAULT_BLOCK_DURATION)