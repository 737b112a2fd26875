"""
Snapshot reconciliation between two replicas.

Classification per job id:
1. Local only: kept (a missing remote entry is never treated as a deletion)
2. Identical on both sides: kept once
3. Different content: the newer ``last_modified`` wins
4. Same ``last_modified``, different content: conflict, local kept as placeholder
5. Remote only: appended after all local-derived entries
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from jobtracker.models import Job, new_id, now_utc

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"


class ConflictResolution(str, Enum):
    """User choice for a single conflict."""
    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"
    KEEP_BOTH = "keep_both"


@dataclass(frozen=True)
class SyncConflict:
    """Local and remote versions of the same job that cannot be ordered by time."""
    local: Job
    remote: Job
    id: str = field(default_factory=new_id)

    @property
    def job_id(self) -> str:
        return self.local.id


@dataclass
class MergeResult:
    """Result of reconciling two snapshots."""
    merged: List[Job]
    conflicts: List[SyncConflict] = field(default_factory=list)
    local_wins: int = 0
    remote_wins: int = 0
    remote_added: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.remote_wins or self.remote_added)


def merge_snapshots(local: List[Job], remote: List[Job]) -> MergeResult:
    """
    Reconcile a local snapshot with a remote one.

    Pure: neither input is mutated. Output order is local-derived jobs in
    local order followed by remote-only jobs in remote order.
    """
    remote_by_id: Dict[str, Job] = {job.id: job for job in remote}
    seen: Set[str] = set()
    result = MergeResult(merged=[])

    for local_job in local:
        seen.add(local_job.id)
        remote_job = remote_by_id.get(local_job.id)

        if remote_job is None or remote_job == local_job:
            result.merged.append(local_job)
        elif local_job.last_modified > remote_job.last_modified:
            result.merged.append(local_job)
            result.local_wins += 1
        elif remote_job.last_modified > local_job.last_modified:
            result.merged.append(remote_job)
            result.remote_wins += 1
        else:
            result.conflicts.append(SyncConflict(local=local_job, remote=remote_job))
            result.merged.append(local_job)

    for remote_job in remote:
        if remote_job.id in seen:
            continue
        seen.add(remote_job.id)
        # Duplicate ids in one snapshot: the last occurrence is the one looked up.
        result.merged.append(remote_by_id[remote_job.id])
        result.remote_added += 1

    if result.conflicts or result.changed:
        logger.info(
            "Merged snapshots: %d remote updates, %d remote additions, %d local wins, %d conflicts",
            result.remote_wins, result.remote_added, result.local_wins, len(result.conflicts),
        )
    return result


def reconcile(local: List[Job], remote: List[Job]) -> Tuple[List[Job], List[SyncConflict]]:
    """Return ``(merged, conflicts)`` for two snapshots."""
    result = merge_snapshots(local, remote)
    return result.merged, result.conflicts


def make_copy(job: Job) -> Job:
    """Duplicate a job under a fresh id, marked as a copy."""
    return replace(
        job,
        id=new_id(),
        company=f"{job.company}{COPY_SUFFIX}",
        last_modified=now_utc(),
    )


def resolve_conflict(
    conflict: SyncConflict,
    resolution: ConflictResolution,
    jobs: List[Job],
) -> Optional[Job]:
    """
    Apply a resolution to ``jobs`` in place.

    Returns the new copy for KEEP_BOTH, otherwise None. If the conflicted job
    is no longer in ``jobs`` nothing is changed.
    """
    resolution = ConflictResolution(resolution)
    index = next((i for i, job in enumerate(jobs) if job.id == conflict.job_id), None)
    if index is None:
        logger.debug("Conflict %s refers to a job that no longer exists", conflict.id)
        return None

    if resolution == ConflictResolution.KEEP_REMOTE:
        jobs[index] = conflict.remote
        return None

    if resolution == ConflictResolution.KEEP_BOTH:
        duplicate = make_copy(conflict.remote)
        jobs.append(duplicate)
        return duplicate

    return None
