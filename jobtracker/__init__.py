"""
JobTracker: job application tracking with multi-device sync.

Keeps the board as a single JSON snapshot in a local or synced folder,
merges changes written by other devices, and surfaces true conflicts
for the user to resolve.
"""

__version__ = "1.0.0"

from jobtracker.models import Job, JobStatus, ScrapedJob, SearchCriteria
from jobtracker.store import JobStore, StoreMode
from jobtracker.sync.merge import ConflictResolution, SyncConflict, reconcile

__all__ = [
    "Job",
    "JobStatus",
    "ScrapedJob",
    "SearchCriteria",
    "JobStore",
    "StoreMode",
    "ConflictResolution",
    "SyncConflict",
    "reconcile",
]
