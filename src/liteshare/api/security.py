"""Bearer token checks for admin and service endpoints."""

import logging
import secrets

from fastapi import Depends, HTTPException, Request, status

from liteshare.api.dependencies import get_settings_dep
from liteshare.config import Settings

logger = logging.getLogger(__name__)


def _verify_bearer(request: Request, expected: str | None, scope: str) -> str:
    """
    Check the request's Bearer token against ``expected``.

    A route whose token is not configured does not exist (404).
    """
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not Found",
        )

    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_header[7:]  # Strip "Bearer "

    if not secrets.compare_digest(token, expected):
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid {scope} key attempt from {client_host}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token


def require_admin_key(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> str:
    """Dependency guarding admin routes (``admin_api_key``)."""
    return _verify_bearer(request, settings.admin_api_key, "admin")


def require_service_key(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
) -> str:
    """
    Dependency guarding routes only the file service may call.

    Quota release belongs to the owner-checked deletion flow, so end users
    cannot reach it with their own credentials.
    """
    return _verify_bearer(request, settings.service_api_key, "service")
