"""
Sync engine keeping task assignments and user pending lists in agreement.
"""

from .counters import SyncCounters, with_note
from .engine import SyncEngine, SyncResult, normalize_task_ids
from .pending import add_pending, remove_pending
from .verify import Issue, IssueSeverity, VerifyResult, verify_mirror

__all__ = [
    "Issue",
    "IssueSeverity",
    "SyncCounters",
    "SyncEngine",
    "SyncResult",
    "VerifyResult",
    "add_pending",
    "normalize_task_ids",
    "remove_pending",
    "verify_mirror",
    "with_note",
]
