"""
Storage layer for JobTracker.

Provides JSON snapshot persistence with:
- Atomic whole-collection writes
- Synced-folder detection (local fallback)
- Import/export of snapshots and CSV export
"""

from jobtracker.storage.files import FileStorage, read_snapshot, write_snapshot
from jobtracker.storage.export import export_to_csv

__all__ = ["FileStorage", "read_snapshot", "write_snapshot", "export_to_csv"]
