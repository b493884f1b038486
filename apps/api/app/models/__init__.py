"""Expose ORM models."""
from .call import ACTIVE_SYNC_STATES, Call, SyncState

__all__ = [
    "ACTIVE_SYNC_STATES",
    "Call",
    "SyncState",
]
