"""
Multi-device sync for JobTracker.

Provides:
- Snapshot reconciliation with conflict detection
- Conflict resolution strategies
- A debounced watcher for the synced snapshot file
"""

from jobtracker.sync.merge import (
    ConflictResolution,
    MergeResult,
    SyncConflict,
    merge_snapshots,
    reconcile,
    resolve_conflict,
)
from jobtracker.sync.watcher import ChangeWatcher

__all__ = [
    "ChangeWatcher",
    "ConflictResolution",
    "MergeResult",
    "SyncConflict",
    "merge_snapshots",
    "reconcile",
    "resolve_conflict",
]
