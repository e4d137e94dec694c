"""
Display-only usage computed from the durable file registry.

The in-memory store stays the only thing that admits or rejects uploads.
This module answers "what does the registry say this identity uploaded in
the current window", for dashboards that prefer durable numbers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from liteshare.quota.policy import QuotaPolicy


@dataclass(frozen=True)
class FileRecord:
    """The slice of a registry file record that quota display needs."""

    size: int
    uploaded_at: datetime
    owner_key: str


@dataclass
class RegistryUsage:
    """Usage recomputed from registry records."""

    count: int
    total_bytes: int
    limit: int
    max_bytes: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def remaining_bytes(self) -> int:
        return max(0, self.max_bytes - self.total_bytes)

    @property
    def percentage_used(self) -> float:
        if self.max_bytes == 0:
            return 0.0
        return self.total_bytes / self.max_bytes * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total_bytes": self.total_bytes,
            "remaining": self.remaining,
            "remaining_bytes": self.remaining_bytes,
            "percentage_used": self.percentage_used,
        }


def usage_from_records(
    records: Iterable[FileRecord],
    policy: QuotaPolicy,
    now: datetime | None = None,
    owner_key: str | None = None,
) -> RegistryUsage:
    """
    Sum the records uploaded within the policy window ending at ``now``.

    Args:
        records: Registry records, typically already filtered to one owner
        policy: Policy whose window and ceilings apply
        now: End of the window (defaults to the current UTC time)
        owner_key: Only count records with this owner key when given
    """
    now = now or datetime.now(timezone.utc)
    window_start = now - timedelta(seconds=policy.window_seconds)

    count = 0
    total_bytes = 0
    for record in records:
        if owner_key is not None and record.owner_key != owner_key:
            continue
        if window_start <= record.uploaded_at <= now:
            count += 1
            total_bytes += record.size

    return RegistryUsage(
        count=count,
        total_bytes=total_bytes,
        limit=policy.max_requests,
        max_bytes=policy.max_bytes,
    )
