"""
In-memory rate limit store for upload quotas.

Tracks, per identity key, how many uploads and how many bytes were admitted
in the current fixed window, and decides whether the next upload fits.
Windows reset in full once they elapse; there is no partial decay.

All mutation happens under a single lock. Entries are immutable and are
swapped in whole, so a reader never sees a byte total without its matching
request count.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from liteshare.quota.policy import DEFAULT_POLICIES, PolicySet, QuotaPolicy

logger = logging.getLogger(__name__)

BURST_PREFIX = "burst:"


def _to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class WindowEntry:
    """Usage counters for one key in one window."""

    count: int
    """Uploads admitted in this window."""

    window_start: float
    """Epoch seconds when this window began."""

    total_bytes: int
    """Bytes admitted in this window."""

    generation: int
    """Stamp identifying this window instance within the store."""

    def is_expired(self, now: float, window_seconds: float) -> bool:
        return now - self.window_start > window_seconds

    def window_end(self, window_seconds: float) -> float:
        return self.window_start + window_seconds


class DecisionOutcome(str, Enum):
    """Outcome of an admission check."""

    ADMITTED = "admitted"
    RATE_LIMIT_REQUESTS = "rate_limit_requests"
    RATE_LIMIT_BYTES = "rate_limit_bytes"


@dataclass
class Decision:
    """Result of ``RateLimitStore.check_and_consume``."""

    outcome: DecisionOutcome
    remaining: int
    """Uploads left in the window."""

    limit: int
    """Upload ceiling of the policy that decided."""

    remaining_bytes: int
    """Bytes left in the window."""

    total_bytes: int
    """Bytes counted in the window."""

    max_bytes: int
    """Byte ceiling of the policy that decided."""

    reset_at: datetime
    """When the deciding window ends."""

    retry_after: int | None = None
    """Whole seconds until the window ends (rejections only)."""

    window_id: int | None = None
    """Generation of the window that was charged (admissions only)."""

    @property
    def allowed(self) -> bool:
        return self.outcome is DecisionOutcome.ADMITTED

    @property
    def reason(self) -> str | None:
        if self.allowed:
            return None
        return self.outcome.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.allowed,
            "reason": self.reason,
            "remaining": self.remaining,
            "limit": self.limit,
            "remaining_bytes": self.remaining_bytes,
            "total_bytes": self.total_bytes,
            "max_bytes": self.max_bytes,
            "reset_at": self.reset_at.isoformat(),
            "retry_after": self.retry_after,
            "window_id": self.window_id,
        }


@dataclass
class StatusSnapshot:
    """Read-only view of a key's usage."""

    remaining: int
    limit: int
    remaining_bytes: int
    max_bytes: int
    total_bytes: int
    reset_at: datetime
    is_authenticated: bool

    burst_remaining: int | None = None
    """Uploads left in the burst window; None without a burst policy."""

    burst_remaining_bytes: int | None = None
    burst_reset_at: datetime | None = None

    @property
    def burst_limited(self) -> bool:
        """True when the burst window, not the class window, is exhausted."""
        return self.burst_remaining == 0 or self.burst_remaining_bytes == 0

    @property
    def percentage_used(self) -> float:
        """Byte usage in percent; can exceed 100 if limits shrank."""
        if self.max_bytes == 0:
            return 0.0
        return self.total_bytes / self.max_bytes * 100

    @property
    def upload_percentage_used(self) -> float:
        if self.limit == 0:
            return 0.0
        return (self.limit - self.remaining) / self.limit * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "remaining": self.remaining,
            "limit": self.limit,
            "remaining_bytes": self.remaining_bytes,
            "max_bytes": self.max_bytes,
            "total_bytes": self.total_bytes,
            "reset_at": self.reset_at.isoformat(),
            "percentage_used": self.percentage_used,
            "upload_percentage_used": self.upload_percentage_used,
            "storage_percentage_used": self.percentage_used,
            "is_authenticated": self.is_authenticated,
            "burst": None if self.burst_remaining is None else {
                "remaining": self.burst_remaining,
                "remaining_bytes": self.burst_remaining_bytes,
                "reset_at": self.burst_reset_at.isoformat(),
            },
        }


class RateLimitStore:
    """
    Shared map from identity key to window entry.

    Construct one per process and hand it to whatever serves requests.
    Thread-safe: route handlers and the sweeper may call in concurrently.
    """

    def __init__(
        self,
        policies: PolicySet | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the store.

        Args:
            policies: Guest, authenticated and optional burst policies
            clock: Source of epoch seconds
        """
        self._policies = DEFAULT_POLICIES if policies is None else policies
        self._clock = clock
        self._entries: dict[str, WindowEntry] = {}
        self._lock = threading.Lock()
        self._generations = itertools.count(1)

    @property
    def policies(self) -> PolicySet:
        return self._policies

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, key: str) -> WindowEntry | None:
        """Return the raw entry stored at ``key``, expired or not."""
        with self._lock:
            return self._entries.get(key)

    def _current(self, key: str, policy: QuotaPolicy, now: float) -> WindowEntry:
        """Entry for ``key`` in a live window, or a fresh one (caller holds lock)."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(now, policy.window_seconds):
            return WindowEntry(
                count=0,
                window_start=now,
                total_bytes=0,
                generation=next(self._generations),
            )
        return entry

    def _evaluate(
        self,
        entry: WindowEntry,
        policy: QuotaPolicy,
        candidate_bytes: int,
        now: float,
    ) -> Decision | None:
        """Return a rejection if the candidate breaks a ceiling, else None."""
        window_end = entry.window_end(policy.window_seconds)
        retry_after = max(0, math.ceil(window_end - now))

        if entry.count >= policy.max_requests:
            return Decision(
                outcome=DecisionOutcome.RATE_LIMIT_REQUESTS,
                remaining=0,
                limit=policy.max_requests,
                remaining_bytes=0,
                total_bytes=entry.total_bytes,
                max_bytes=policy.max_bytes,
                reset_at=_to_datetime(window_end),
                retry_after=retry_after,
            )

        if entry.total_bytes + candidate_bytes > policy.max_bytes:
            return Decision(
                outcome=DecisionOutcome.RATE_LIMIT_BYTES,
                remaining=max(0, policy.max_requests - entry.count),
                limit=policy.max_requests,
                remaining_bytes=max(0, policy.max_bytes - entry.total_bytes),
                total_bytes=entry.total_bytes,
                max_bytes=policy.max_bytes,
                reset_at=_to_datetime(window_end),
                retry_after=retry_after,
            )

        return None

    def check_and_consume(
        self,
        key: str,
        candidate_bytes: int,
        is_authenticated: bool = False,
    ) -> Decision:
        """
        Admit or reject an upload and charge it when admitted.

        The request ceiling is checked before the byte ceiling, and the
        class policy before the burst policy. Rejections leave the store
        untouched.

        Args:
            key: Tracking key from ``derive_key``
            candidate_bytes: Size of the upload
            is_authenticated: Whether the identity is signed in

        Returns:
            Decision describing the outcome and the remaining quota
        """
        if candidate_bytes < 0:
            raise ValueError(f"candidate_bytes must be >= 0, got {candidate_bytes}")

        policy = self._policies.select(is_authenticated)
        burst = self._policies.burst

        with self._lock:
            now = self._clock()
            entry = self._current(key, policy, now)

            rejection = self._evaluate(entry, policy, candidate_bytes, now)
            if rejection is None and burst is not None:
                burst_entry = self._current(BURST_PREFIX + key, burst, now)
                rejection = self._evaluate(burst_entry, burst, candidate_bytes, now)

            if rejection is not None:
                logger.info(
                    f"Rejected upload for {key}: {rejection.reason} "
                    f"({candidate_bytes} bytes, retry in {rejection.retry_after}s)"
                )
                return rejection

            entry = replace(
                entry,
                count=entry.count + 1,
                total_bytes=entry.total_bytes + candidate_bytes,
            )
            self._entries[key] = entry

            if burst is not None:
                self._entries[BURST_PREFIX + key] = replace(
                    burst_entry,
                    count=burst_entry.count + 1,
                    total_bytes=burst_entry.total_bytes + candidate_bytes,
                )

        logger.debug(
            f"Admitted upload for {key}: {entry.count}/{policy.max_requests} uploads, "
            f"{entry.total_bytes}/{policy.max_bytes} bytes"
        )
        return Decision(
            outcome=DecisionOutcome.ADMITTED,
            remaining=policy.max_requests - entry.count,
            limit=policy.max_requests,
            remaining_bytes=policy.max_bytes - entry.total_bytes,
            total_bytes=entry.total_bytes,
            max_bytes=policy.max_bytes,
            reset_at=_to_datetime(entry.window_end(policy.window_seconds)),
            window_id=entry.generation,
        )

    def peek_status(self, key: str, is_authenticated: bool = False) -> StatusSnapshot:
        """
        Report current usage without charging or creating anything.

        A missing or elapsed entry reports full capacity. The class-policy
        fields never reflect the burst window; with a burst policy configured
        the ``burst_*`` fields carry its remaining capacity, and an upload is
        only admitted when both have room.
        """
        policy = self._policies.select(is_authenticated)
        burst = self._policies.burst

        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            burst_entry = self._entries.get(BURST_PREFIX + key)

        burst_fields: dict[str, Any] = {}
        if burst is not None:
            if burst_entry is None or burst_entry.is_expired(now, burst.window_seconds):
                burst_fields = {
                    "burst_remaining": burst.max_requests,
                    "burst_remaining_bytes": burst.max_bytes,
                    "burst_reset_at": _to_datetime(now + burst.window_seconds),
                }
            else:
                burst_fields = {
                    "burst_remaining": max(0, burst.max_requests - burst_entry.count),
                    "burst_remaining_bytes": max(0, burst.max_bytes - burst_entry.total_bytes),
                    "burst_reset_at": _to_datetime(burst_entry.window_end(burst.window_seconds)),
                }

        if entry is None or entry.is_expired(now, policy.window_seconds):
            return StatusSnapshot(
                remaining=policy.max_requests,
                limit=policy.max_requests,
                remaining_bytes=policy.max_bytes,
                max_bytes=policy.max_bytes,
                total_bytes=0,
                reset_at=_to_datetime(now + policy.window_seconds),
                is_authenticated=is_authenticated,
                **burst_fields,
            )

        return StatusSnapshot(
            remaining=max(0, policy.max_requests - entry.count),
            limit=policy.max_requests,
            remaining_bytes=max(0, policy.max_bytes - entry.total_bytes),
            max_bytes=policy.max_bytes,
            total_bytes=entry.total_bytes,
            reset_at=_to_datetime(entry.window_end(policy.window_seconds)),
            is_authenticated=is_authenticated,
            **burst_fields,
        )

    def release(
        self,
        key: str,
        bytes_to_release: int,
        window_id: int | None = None,
    ) -> None:
        """
        Give back one upload and its bytes after the file was deleted.

        Applies to whatever entry currently sits at ``key``; an entry whose
        window already rolled over gets decremented too. Pass the
        ``window_id`` from the admitting decision to skip the release when
        the charged window is gone. Unknown keys are ignored.
        """
        if bytes_to_release < 0:
            raise ValueError(f"bytes_to_release must be >= 0, got {bytes_to_release}")

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Release for unknown key {key} ignored")
                return

            if window_id is not None and window_id != entry.generation:
                logger.debug(
                    f"Release for {key} ignored: window {window_id} "
                    f"superseded by {entry.generation}"
                )
                return

            self._entries[key] = self._decremented(entry, bytes_to_release)

            burst_entry = self._entries.get(BURST_PREFIX + key)
            if burst_entry is not None:
                self._entries[BURST_PREFIX + key] = self._decremented(
                    burst_entry, bytes_to_release
                )

        logger.debug(f"Released {bytes_to_release} bytes for {key}")

    @staticmethod
    def _decremented(entry: WindowEntry, bytes_to_release: int) -> WindowEntry:
        return replace(
            entry,
            count=max(0, entry.count - 1),
            total_bytes=max(0, entry.total_bytes - bytes_to_release),
        )

    def reset(self, key: str) -> bool:
        """
        Drop all usage tracked for a key.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            self._entries.pop(BURST_PREFIX + key, None)

        if removed:
            logger.info(f"Reset rate limit for {key}")
        return removed

    def sweep(self) -> int:
        """
        Remove entries older than the longest configured window.

        The lock is taken per entry so admissions are never held up for the
        whole scan.

        Returns:
            Number of entries removed
        """
        threshold = self._policies.max_window_seconds

        with self._lock:
            now = self._clock()
            keys = list(self._entries)

        removed = 0
        for key in keys:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and now - entry.window_start > threshold:
                    del self._entries[key]
                    removed += 1

        if removed:
            logger.info(f"Swept {removed} stale rate limit entries")
        else:
            logger.debug("Sweep found no stale rate limit entries")
        return removed
