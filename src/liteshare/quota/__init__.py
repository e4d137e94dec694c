"""
Upload quota engine.

Rations uploads per identity by request count and byte volume inside
fixed windows, with separate ceilings for guests and signed-in users.
"""

from liteshare.quota.formatting import format_bytes, format_reset_time, rejection_message
from liteshare.quota.keys import client_address, derive_key
from liteshare.quota.policy import (
    AUTH_POLICY,
    BURST_POLICY,
    DEFAULT_POLICIES,
    GUEST_POLICY,
    PolicySet,
    QuotaPolicy,
    select_policy,
)
from liteshare.quota.reconcile import FileRecord, RegistryUsage, usage_from_records
from liteshare.quota.store import (
    Decision,
    DecisionOutcome,
    RateLimitStore,
    StatusSnapshot,
    WindowEntry,
)
from liteshare.quota.sweeper import Sweeper

__all__ = [
    "AUTH_POLICY",
    "BURST_POLICY",
    "DEFAULT_POLICIES",
    "Decision",
    "DecisionOutcome",
    "FileRecord",
    "GUEST_POLICY",
    "PolicySet",
    "QuotaPolicy",
    "RateLimitStore",
    "RegistryUsage",
    "StatusSnapshot",
    "Sweeper",
    "WindowEntry",
    "client_address",
    "derive_key",
    "format_bytes",
    "format_reset_time",
    "rejection_message",
    "select_policy",
    "usage_from_records",
]
