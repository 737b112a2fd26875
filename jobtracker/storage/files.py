"""
JSON file storage for job snapshots.

The whole collection is read and written as one JSON array. Writes go to a
temp file in the destination directory and are moved into place, so readers
(including other devices' sync clients) never see a partial file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import List, Optional

from jobtracker.models import (
    Job,
    SearchCriteria,
    SnapshotDecodeError,
    jobs_from_json,
    jobs_to_json,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "JobTracker.json"
SEARCH_CRITERIA_FILE = "search.json"


def read_snapshot(path: str) -> Optional[List[Job]]:
    """
    Read a snapshot file.

    Returns None if the file is missing, unreadable or not a valid snapshot.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Could not read snapshot %s: %s", path, e)
        return None

    try:
        return jobs_from_json(data)
    except SnapshotDecodeError as e:
        logger.warning("Ignoring invalid snapshot %s: %s", path, e)
        return None


def write_snapshot(path: str, jobs: List[Job]) -> bool:
    """
    Atomically write a snapshot file.

    Returns False (after logging) if the write failed.
    """
    directory = os.path.dirname(os.path.abspath(path))
    payload = json.dumps(jobs_to_json(jobs), indent=2, sort_keys=True, ensure_ascii=False)
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".jobtracker-", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
        return True
    except OSError as e:
        logger.warning("Failed to save jobs to %s: %s", path, e)
        return False
    finally:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass


class FileStorage:
    """
    Snapshot storage in a local directory, or a synced folder when available.
    """

    def __init__(
        self,
        local_dir: str,
        cloud_dir: Optional[str] = None,
        file_name: str = DEFAULT_FILE_NAME,
    ):
        """
        Args:
            local_dir: Directory used when no synced folder is available
            cloud_dir: Synced folder (Dropbox, iCloud Drive, ...) shared between devices
            file_name: Snapshot file name in either directory
        """
        self.local_dir = os.path.expanduser(local_dir)
        self.cloud_dir = os.path.expanduser(cloud_dir) if cloud_dir else None
        self.file_name = file_name
        self._lock = threading.Lock()

    @property
    def local_file_path(self) -> str:
        return os.path.join(self.local_dir, self.file_name)

    @property
    def cloud_file_path(self) -> Optional[str]:
        """Snapshot path in the synced folder, or None if the folder is not mounted."""
        if not self.cloud_dir or not os.path.isdir(self.cloud_dir):
            return None
        return os.path.join(self.cloud_dir, self.file_name)

    @property
    def is_cloud_available(self) -> bool:
        return self.cloud_file_path is not None

    @property
    def active_file_path(self) -> str:
        return self.cloud_file_path or self.local_file_path

    def load(self) -> Optional[List[Job]]:
        """Load the current snapshot, or None if there is no usable data."""
        with self._lock:
            return read_snapshot(self.active_file_path)

    def save(self, jobs: List[Job]) -> bool:
        """Write the full snapshot to the active location."""
        with self._lock:
            return write_snapshot(self.active_file_path, jobs)

    def load_from(self, path: str) -> Optional[List[Job]]:
        """Load a snapshot from an arbitrary file (import)."""
        return read_snapshot(os.path.expanduser(path))

    def export_to(self, path: str, jobs: List[Job]) -> bool:
        """Write a snapshot to an arbitrary file (export)."""
        return write_snapshot(os.path.expanduser(path), jobs)

    # ----------------------------- Search criteria -----------------------------

    @property
    def search_criteria_path(self) -> str:
        return os.path.join(self.local_dir, SEARCH_CRITERIA_FILE)

    def load_search_criteria(self) -> SearchCriteria:
        """Load saved search preferences, falling back to defaults."""
        try:
            with open(self.search_criteria_path, "r", encoding="utf-8") as f:
                return SearchCriteria.from_dict(json.load(f))
        except FileNotFoundError:
            return SearchCriteria()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read search criteria: %s", e)
            return SearchCriteria()

    def save_search_criteria(self, criteria: SearchCriteria) -> bool:
        try:
            os.makedirs(self.local_dir, exist_ok=True)
            with open(self.search_criteria_path, "w", encoding="utf-8") as f:
                json.dump(criteria.to_dict(), f, indent=2)
            return True
        except OSError as e:
            logger.warning("Could not save search criteria: %s", e)
            return False
