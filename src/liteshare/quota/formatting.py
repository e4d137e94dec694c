"""Human readable rendering of quota numbers."""

import math
from datetime import datetime, timezone

from liteshare.quota.store import Decision, DecisionOutcome

BYTE_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(num_bytes: int) -> str:
    """Format a byte count, e.g. ``1536`` -> ``1.5 KB``."""
    if num_bytes <= 0:
        return "0 B"

    exponent = min(int(math.log(num_bytes, 1024)), len(BYTE_UNITS) - 1)
    # log() can land just under an exact power of 1024
    if exponent + 1 < len(BYTE_UNITS) and num_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = f"{num_bytes / 1024 ** exponent:.2f}".rstrip("0").rstrip(".")
    return f"{value} {BYTE_UNITS[exponent]}"


def format_reset_time(reset_at: datetime, now: datetime | None = None) -> str:
    """Format time until ``reset_at`` as ``45s``, ``12m``, ``5h`` or ``2d``."""
    now = now or datetime.now(timezone.utc)
    diff = (reset_at - now).total_seconds()

    if diff <= 0:
        return "Now"

    seconds = math.ceil(diff)
    if seconds < 60:
        return f"{seconds}s"
    minutes = math.ceil(diff / 60)
    if minutes < 60:
        return f"{minutes}m"
    hours = math.ceil(diff / 3600)
    if hours < 24:
        return f"{hours}h"
    return f"{math.ceil(diff / 86400)}d"


def rejection_message(decision: Decision, now: datetime | None = None) -> str:
    """User facing explanation for a rejected upload."""
    reset_in = format_reset_time(decision.reset_at, now)

    if decision.outcome is DecisionOutcome.RATE_LIMIT_REQUESTS:
        return (
            f"Upload limit reached ({decision.limit} uploads). "
            f"Try again in {reset_in}."
        )
    if decision.outcome is DecisionOutcome.RATE_LIMIT_BYTES:
        return (
            f"Upload size limit reached ({format_bytes(decision.total_bytes)} of "
            f"{format_bytes(decision.max_bytes)} used). Try again in {reset_in}."
        )
    return "Upload allowed."
