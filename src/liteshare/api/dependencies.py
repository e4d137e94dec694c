"""Request-scoped dependencies: store, settings and caller identity."""

from dataclasses import dataclass

from fastapi import Request

from liteshare.config import Settings
from liteshare.quota.keys import client_address, derive_key
from liteshare.quota.store import RateLimitStore

USER_ID_HEADER = "x-user-id"


@dataclass(frozen=True)
class Identity:
    """Who is uploading, as far as quota tracking is concerned."""

    key: str
    user_id: str | None
    address: str

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RateLimitStore:
    return request.app.state.quota_store


def get_identity(request: Request) -> Identity:
    """
    Resolve the caller.

    The identity provider sits in front of this service and forwards the
    signed-in user id in ``X-User-Id``; it is trusted as given.
    """
    settings: Settings = request.app.state.settings
    user_id = request.headers.get(USER_ID_HEADER, "").strip() or None
    address = client_address(
        request.headers,
        peer_host=request.client.host if request.client else None,
        trust_proxy_headers=settings.trust_proxy_headers,
    )
    return Identity(key=derive_key(user_id, address), user_id=user_id, address=address)
