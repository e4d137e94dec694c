"""Pytest configuration and fixtures."""

import pytest

from liteshare.quota.policy import PolicySet, QuotaPolicy
from liteshare.quota.store import RateLimitStore

START_TIME = 1_700_000_000.0


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant until advanced."""
    return FakeClock()


@pytest.fixture
def policies() -> PolicySet:
    """Small policies that are easy to exhaust in tests."""
    return PolicySet(
        guest=QuotaPolicy(name="guest", window_seconds=60, max_requests=2, max_bytes=1000),
        authenticated=QuotaPolicy(
            name="authenticated", window_seconds=120, max_requests=5, max_bytes=5000
        ),
    )


@pytest.fixture
def store(policies: PolicySet, clock: FakeClock) -> RateLimitStore:
    """Store on the fake clock with small policies."""
    return RateLimitStore(policies=policies, clock=clock)
