"""Tests for settings and policy construction."""

import pytest

from liteshare.config import MIB, Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        """Defaults mirror the built-in guest and authenticated limits."""
        settings = Settings(_env_file=None)

        assert settings.guest_max_requests == 10
        assert settings.guest_max_bytes == 32 * MIB
        assert settings.auth_max_requests == 100
        assert settings.auth_max_bytes == 512 * MIB
        assert settings.burst_enabled is False
        assert settings.sweep_interval_seconds == 600
        assert settings.admin_api_key is None

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables override defaults, case-insensitively."""
        monkeypatch.setenv("GUEST_MAX_REQUESTS", "3")
        monkeypatch.setenv("burst_enabled", "true")

        settings = Settings(_env_file=None)

        assert settings.guest_max_requests == 3
        assert settings.burst_enabled is True

    def test_build_policies(self) -> None:
        """Policies reflect settings; burst only when enabled."""
        settings = Settings(
            _env_file=None,
            guest_max_requests=3,
            guest_window_seconds=3600,
            auth_window_seconds=7200,
        )
        policies = settings.build_policies()

        assert policies.guest.max_requests == 3
        assert policies.authenticated.window_seconds == 7200
        assert policies.burst is None
        assert policies.max_window_seconds == 7200

    def test_build_policies_with_burst(self) -> None:
        """Enabled burst protection adds a burst policy."""
        settings = Settings(_env_file=None, burst_enabled=True, burst_max_requests=2)
        policies = settings.build_policies()

        assert policies.burst is not None
        assert policies.burst.max_requests == 2
        assert policies.burst.window_seconds == 60

    def test_invalid_policy_values(self) -> None:
        """Bad limits surface when policies are built."""
        settings = Settings(_env_file=None, guest_window_seconds=0)

        with pytest.raises(ValueError):
            settings.build_policies()
