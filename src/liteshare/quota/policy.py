"""
Quota policies for upload rationing.

A policy is static configuration for one class of identity: how long a
window lasts and how many uploads and bytes fit into it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

MIB = 1024 * 1024
DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class QuotaPolicy:
    """
    Ceilings for one identity class.

    Attributes:
        window_seconds: Length of one accounting window
        max_requests: Uploads admitted per window
        max_bytes: Cumulative bytes admitted per window
        name: Label used in logs and responses
    """

    window_seconds: float
    max_requests: int
    max_bytes: int
    name: str = "default"

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")
        if self.max_requests < 0:
            raise ValueError(f"max_requests must be >= 0, got {self.max_requests}")
        if self.max_bytes < 0:
            raise ValueError(f"max_bytes must be >= 0, got {self.max_bytes}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


GUEST_POLICY = QuotaPolicy(
    name="guest",
    window_seconds=DAY_SECONDS,
    max_requests=10,
    max_bytes=32 * MIB,
)

AUTH_POLICY = QuotaPolicy(
    name="authenticated",
    window_seconds=DAY_SECONDS,
    max_requests=100,
    max_bytes=512 * MIB,
)

BURST_POLICY = QuotaPolicy(
    name="burst",
    window_seconds=60,
    max_requests=5,
    max_bytes=100 * MIB,
)


@dataclass(frozen=True)
class PolicySet:
    """The policies a single store enforces."""

    guest: QuotaPolicy = GUEST_POLICY
    authenticated: QuotaPolicy = AUTH_POLICY
    burst: QuotaPolicy | None = None

    def select(self, is_authenticated: bool) -> QuotaPolicy:
        """Pick the class policy for an identity."""
        return self.authenticated if is_authenticated else self.guest

    @property
    def max_window_seconds(self) -> float:
        """Longest window across every configured policy."""
        windows = [self.guest.window_seconds, self.authenticated.window_seconds]
        if self.burst is not None:
            windows.append(self.burst.window_seconds)
        return max(windows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "guest": self.guest.to_dict(),
            "authenticated": self.authenticated.to_dict(),
            "burst": self.burst.to_dict() if self.burst else None,
        }


DEFAULT_POLICIES = PolicySet()


def select_policy(
    is_authenticated: bool,
    policies: PolicySet = DEFAULT_POLICIES,
) -> QuotaPolicy:
    """Return the guest or authenticated policy."""
    return policies.select(is_authenticated)
