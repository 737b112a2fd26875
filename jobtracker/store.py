"""
JobStore: the single owner of the live job collection.

All reads and writes of the collection and of the pending conflicts happen
under one lock, so a remote merge is never interleaved with a user edit.
Every mutation is persisted before the call returns.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from jobtracker.models import Job, JobStatus, now_utc
from jobtracker.storage.export import export_to_csv
from jobtracker.storage.files import FileStorage
from jobtracker.sync.merge import (
    ConflictResolution,
    SyncConflict,
    merge_snapshots,
    resolve_conflict,
)
from jobtracker.sync.watcher import ChangeWatcher

logger = logging.getLogger(__name__)

Listener = Callable[["JobStore"], None]


class StoreMode(str, Enum):
    NORMAL = "normal"
    CONFLICT_PENDING = "conflict_pending"


class JobStore:
    """
    Job collection with persistence and multi-device sync.

    Args:
        storage: Snapshot storage (local or synced folder)
        debounce_s: Watcher debounce window
        poll_interval_s: Watcher poll interval
    """

    def __init__(
        self,
        storage: FileStorage,
        debounce_s: float = 0.5,
        poll_interval_s: float = 0.25,
        autoload: bool = True,
    ):
        self.storage = storage
        self.debounce_s = debounce_s
        self.poll_interval_s = poll_interval_s
        self._lock = threading.RLock()
        self._jobs: List[Job] = []
        self._conflicts: List[SyncConflict] = []
        self._listeners: List[Listener] = []
        self._watcher: Optional[ChangeWatcher] = None
        if autoload:
            self.load()

    # ----------------------------- State -----------------------------

    @property
    def jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs)

    @property
    def pending_conflicts(self) -> List[SyncConflict]:
        with self._lock:
            return list(self._conflicts)

    @property
    def has_conflicts(self) -> bool:
        with self._lock:
            return bool(self._conflicts)

    @property
    def mode(self) -> StoreMode:
        return StoreMode.CONFLICT_PENDING if self.has_conflicts else StoreMode.NORMAL

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return next((job for job in self._jobs if job.id == job_id), None)

    def jobs_for(self, status: JobStatus) -> List[Job]:
        """Jobs in one board column, in collection order."""
        with self._lock:
            return [job for job in self._jobs if job.status == status]

    def counts_by_status(self) -> Dict[JobStatus, int]:
        with self._lock:
            counts = {status: 0 for status in JobStatus.ordered()}
            for job in self._jobs:
                counts[job.status] += 1
            return counts

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ----------------------------- Persistence -----------------------------

    def load(self) -> bool:
        """Replace the collection with the stored snapshot, if there is one."""
        loaded = self.storage.load()
        if loaded is None:
            return False
        with self._lock:
            self._jobs = loaded
            self._notify()
        return True

    def _save(self) -> bool:
        return self.storage.save(self._jobs)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener failed")

    def _index(self, job_id: str) -> Optional[int]:
        return next((i for i, job in enumerate(self._jobs) if job.id == job_id), None)

    # ----------------------------- CRUD -----------------------------

    def add_job(self, job: Job) -> Job:
        with self._lock:
            new_job = job.touched(self._stamp(job))
            self._jobs.append(new_job)
            self._save()
            self._notify()
            return new_job

    def update_job(self, job: Job) -> bool:
        """Replace the job with the same id. Returns False if it does not exist."""
        with self._lock:
            index = self._index(job.id)
            if index is None:
                return False
            self._jobs[index] = job.touched(self._stamp(job))
            self._save()
            self._notify()
            return True

    def delete_job(self, job_id: str) -> bool:
        with self._lock:
            index = self._index(job_id)
            if index is None:
                return False
            del self._jobs[index]
            self._save()
            self._notify()
            return True

    def move_job(self, job_id: str, status: JobStatus) -> bool:
        with self._lock:
            index = self._index(job_id)
            if index is None:
                return False
            job = self._jobs[index]
            moved = dataclasses.replace(job, status=JobStatus(status))
            self._jobs[index] = moved.touched(self._stamp(job))
            self._save()
            self._notify()
            return True

    @staticmethod
    def _stamp(job: Job):
        # Never move last_modified behind date_added, even with a skewed clock.
        return max(now_utc(), job.date_added)

    # ----------------------------- Sync -----------------------------

    def apply_remote(self, remote: List[Job]) -> List[SyncConflict]:
        """
        Merge a remote snapshot into the collection.

        Without conflicts the merged collection is persisted (unless the
        remote snapshot already matches it). With conflicts it is only
        adopted in memory, so the synced file keeps the remote versions until
        the user resolves them. Returns the conflicts found by this pass.
        """
        with self._lock:
            result = merge_snapshots(self._jobs, remote)
            self._jobs = result.merged
            conflicts = self._refresh_conflicts(result.conflicts)
            # Rewriting an identical file would wake the watcher again.
            if not conflicts and result.merged != remote:
                self._save()
            self._notify()
            return conflicts

    def _refresh_conflicts(self, found: List[SyncConflict]) -> List[SyncConflict]:
        """
        Fold a merge pass's conflicts into the pending list.

        A conflict detected again keeps its existing id. Pending conflicts
        whose local job was replaced by this pass are dropped.
        """
        pending = {c.job_id: c for c in self._conflicts}
        fresh: List[SyncConflict] = []
        for conflict in found:
            previous = pending.get(conflict.job_id)
            if previous is not None and (previous.local, previous.remote) == (conflict.local, conflict.remote):
                fresh.append(previous)
            else:
                fresh.append(conflict)

        fresh_ids = {c.job_id for c in fresh}
        current = {job.id: job for job in self._jobs}
        kept = [
            c for c in self._conflicts
            if c.job_id not in fresh_ids and current.get(c.job_id) == c.local
        ]
        superseded = [
            c for c in self._conflicts
            if c.job_id not in fresh_ids and current.get(c.job_id) != c.local
        ]
        if superseded:
            logger.info("Dropped %d superseded sync conflicts", len(superseded))
        self._conflicts = kept + fresh
        return fresh

    def resolve_conflict(
        self,
        conflict: Union[SyncConflict, str],
        resolution: ConflictResolution,
    ) -> Optional[Job]:
        """
        Resolve one pending conflict and persist.

        Accepts the conflict or its id. Unknown conflicts are ignored.
        Returns the new copy for KEEP_BOTH.
        """
        conflict_id = conflict if isinstance(conflict, str) else conflict.id
        with self._lock:
            pending = next((c for c in self._conflicts if c.id == conflict_id), None)
            if pending is None:
                return None
            duplicate = resolve_conflict(pending, resolution, self._jobs)
            self._conflicts = [c for c in self._conflicts if c.id != conflict_id]
            self._save()
            if not self._conflicts:
                logger.info("All sync conflicts resolved")
            self._notify()
            return duplicate

    def start_sync(self) -> bool:
        """Watch the synced snapshot for changes from other devices."""
        path = self.storage.cloud_file_path
        if path is None:
            logger.info("Synced folder unavailable; running local only")
            return False
        with self._lock:
            if self._watcher is None:
                self._watcher = ChangeWatcher(
                    path,
                    self.storage.load_from,
                    debounce_s=self.debounce_s,
                    poll_interval_s=self.poll_interval_s,
                )
            watcher = self._watcher
        return watcher.start(self.apply_remote)

    def stop_sync(self) -> None:
        # Not under self._lock: the watcher may be waiting on it inside apply_remote.
        watcher = self._watcher
        if watcher is not None:
            watcher.stop()

    # ----------------------------- Import / export -----------------------------

    def import_from(self, path: str, replace: bool = False) -> Optional[int]:
        """
        Import jobs from a snapshot file.

        Merge mode adds only jobs whose id is not present yet; replace mode
        discards the current collection. Returns the number of jobs imported,
        or None if the file could not be read.
        """
        imported = self.storage.load_from(path)
        if imported is None:
            return None
        with self._lock:
            if replace:
                self._jobs = list(imported)
                added = len(imported)
            else:
                existing = {job.id for job in self._jobs}
                new_jobs = []
                for job in imported:
                    if job.id not in existing:
                        existing.add(job.id)
                        new_jobs.append(job)
                self._jobs.extend(new_jobs)
                added = len(new_jobs)
            self._save()
            self._notify()
            return added

    def export_to(self, path: str) -> bool:
        with self._lock:
            jobs = list(self._jobs)
        return self.storage.export_to(path, jobs)

    def export_csv(self, path: str, status: Optional[JobStatus] = None) -> int:
        with self._lock:
            jobs = list(self._jobs)
        return export_to_csv(path, jobs, status=status)
