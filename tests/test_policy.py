"""Tests for quota policies and policy selection."""

import dataclasses

import pytest

from liteshare.quota.policy import (
    AUTH_POLICY,
    BURST_POLICY,
    DEFAULT_POLICIES,
    GUEST_POLICY,
    MIB,
    PolicySet,
    QuotaPolicy,
    select_policy,
)


class TestQuotaPolicy:
    """Tests for QuotaPolicy."""

    def test_default_values(self) -> None:
        """Built-in policies match the service's published limits."""
        assert GUEST_POLICY.window_seconds == 86400
        assert GUEST_POLICY.max_requests == 10
        assert GUEST_POLICY.max_bytes == 32 * MIB
        assert AUTH_POLICY.max_requests == 100
        assert AUTH_POLICY.max_bytes == 512 * MIB
        assert BURST_POLICY.window_seconds == 60
        assert BURST_POLICY.max_requests == 5

    def test_immutable(self) -> None:
        """Policies cannot be changed at runtime."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            GUEST_POLICY.max_requests = 1000  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"window_seconds": 0, "max_requests": 1, "max_bytes": 1},
            {"window_seconds": 60, "max_requests": -1, "max_bytes": 1},
            {"window_seconds": 60, "max_requests": 1, "max_bytes": -1},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        """Nonsensical ceilings fail at construction."""
        with pytest.raises(ValueError):
            QuotaPolicy(**kwargs)

    def test_to_dict(self) -> None:
        """Test serialization."""
        data = GUEST_POLICY.to_dict()

        assert data["name"] == "guest"
        assert data["max_bytes"] == 32 * MIB


class TestPolicySet:
    """Tests for PolicySet."""

    def test_select(self) -> None:
        """Selection has exactly two branches."""
        assert DEFAULT_POLICIES.select(True) is AUTH_POLICY
        assert DEFAULT_POLICIES.select(False) is GUEST_POLICY
        assert select_policy(True) is AUTH_POLICY
        assert select_policy(False) is GUEST_POLICY

    def test_max_window_across_classes(self) -> None:
        """The longest class window wins, whichever class owns it."""
        policies = PolicySet(
            guest=QuotaPolicy(window_seconds=60, max_requests=1, max_bytes=1),
            authenticated=QuotaPolicy(window_seconds=300, max_requests=1, max_bytes=1),
        )

        assert policies.max_window_seconds == 300

    def test_max_window_includes_burst(self) -> None:
        """A burst window longer than both classes sets the threshold."""
        policies = PolicySet(
            guest=QuotaPolicy(window_seconds=10, max_requests=1, max_bytes=1),
            authenticated=QuotaPolicy(window_seconds=20, max_requests=1, max_bytes=1),
            burst=QuotaPolicy(window_seconds=30, max_requests=1, max_bytes=1),
        )

        assert policies.max_window_seconds == 30

    def test_to_dict(self) -> None:
        """Burst serializes as None when not configured."""
        data = DEFAULT_POLICIES.to_dict()

        assert data["guest"]["max_requests"] == 10
        assert data["authenticated"]["max_requests"] == 100
        assert data["burst"] is None
