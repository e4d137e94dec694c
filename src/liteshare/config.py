"""Configuration module using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from liteshare.quota.policy import MIB, PolicySet, QuotaPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Guest uploads (anonymous, tracked per origin address)
    guest_window_seconds: float = 24 * 60 * 60
    guest_max_requests: int = 10
    guest_max_bytes: int = 32 * MIB  # 2 files x 16MB

    # Signed-in uploads
    auth_window_seconds: float = 24 * 60 * 60
    auth_max_requests: int = 100
    auth_max_bytes: int = 512 * MIB  # 8 files x 64MB

    # Burst protection, applied on top of the class policy
    burst_enabled: bool = False
    burst_window_seconds: float = 60
    burst_max_requests: int = 5
    burst_max_bytes: int = 100 * MIB

    # Sweeper
    sweep_interval_seconds: float = 10 * 60

    # Request identity
    trust_proxy_headers: bool = True
    admin_api_key: str | None = None
    service_api_key: str | None = None

    # Logging
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def build_policies(self) -> PolicySet:
        """Build the immutable policy set described by these settings."""
        burst = None
        if self.burst_enabled:
            burst = QuotaPolicy(
                name="burst",
                window_seconds=self.burst_window_seconds,
                max_requests=self.burst_max_requests,
                max_bytes=self.burst_max_bytes,
            )

        return PolicySet(
            guest=QuotaPolicy(
                name="guest",
                window_seconds=self.guest_window_seconds,
                max_requests=self.guest_max_requests,
                max_bytes=self.guest_max_bytes,
            ),
            authenticated=QuotaPolicy(
                name="authenticated",
                window_seconds=self.auth_window_seconds,
                max_requests=self.auth_max_requests,
                max_bytes=self.auth_max_bytes,
            ),
            burst=burst,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
