"""API routes for upload quota checks."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from liteshare.api.dependencies import Identity, get_identity, get_store
from liteshare.api.security import require_admin_key, require_service_key
from liteshare.quota.formatting import format_reset_time, rejection_message
from liteshare.quota.store import RateLimitStore

logger = logging.getLogger(__name__)
router = APIRouter()


# --- Request Models ---

class UploadCheckRequest(BaseModel):
    """Upload about to be sent to storage."""
    file_size: int = Field(..., ge=0, description="Size of the file in bytes")


class ReleaseRequest(BaseModel):
    """Deleted upload whose quota should be returned."""
    file_size: int = Field(..., ge=0, description="Size of the deleted file in bytes")
    window_id: int | None = Field(
        default=None,
        description="window_id from the admitting check; stale windows are skipped",
    )


# --- Endpoints ---

@router.get("/rate-limit")
def get_rate_limit_status(
    identity: Identity = Depends(get_identity),
    store: RateLimitStore = Depends(get_store),
) -> dict[str, Any]:
    """Current upload quota for the caller. Never charges anything."""
    snapshot = store.peek_status(identity.key, identity.is_authenticated)
    data = snapshot.to_dict()
    data["reset_in"] = format_reset_time(snapshot.reset_at)
    return {"success": True, "data": data}


@router.post("/uploads/check")
def check_upload(
    request: UploadCheckRequest,
    identity: Identity = Depends(get_identity),
    store: RateLimitStore = Depends(get_store),
):
    """
    Admit an upload and charge it against the caller's quota.

    Returns 429 with a Retry-After header when a ceiling would be exceeded.
    """
    decision = store.check_and_consume(
        identity.key, request.file_size, identity.is_authenticated
    )

    if not decision.allowed:
        content = decision.to_dict()
        content["error"] = rejection_message(decision)
        return JSONResponse(
            status_code=429,
            content=content,
            headers={"Retry-After": str(decision.retry_after)},
        )

    return decision.to_dict()


@router.post("/uploads/release", dependencies=[Depends(require_service_key)])
def release_upload(
    request: ReleaseRequest,
    identity: Identity = Depends(get_identity),
    store: RateLimitStore = Depends(get_store),
) -> dict[str, Any]:
    """
    Return quota for a deleted upload.

    Called by the file service once per successful deletion, on behalf of
    the identity in the forwarded headers.
    """
    store.release(identity.key, request.file_size, window_id=request.window_id)
    logger.info(f"Released rate limit for {identity.key}: {request.file_size} bytes")
    return {"success": True}


@router.delete("/rate-limit/{key}", dependencies=[Depends(require_admin_key)])
def reset_rate_limit(
    key: str,
    store: RateLimitStore = Depends(get_store),
) -> dict[str, Any]:
    """Admin: forget all usage tracked for a key."""
    return {"success": True, "key": key, "removed": store.reset(key)}
