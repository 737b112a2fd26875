"""
Tabular export of the job board.
"""

from __future__ import annotations

from typing import List, Optional

import pandas as pd

from jobtracker.models import Job, JobStatus

EXPORT_COLUMNS = [
    "id", "status", "company", "role", "location", "salary",
    "url", "notes", "dateAdded", "lastModified",
]


def jobs_to_dataframe(jobs: List[Job]) -> pd.DataFrame:
    """Build a DataFrame ordered by board column, then by date added."""
    df = pd.DataFrame([job.to_dict() for job in jobs], columns=EXPORT_COLUMNS)
    if df.empty:
        return df
    order = {status.value: i for i, status in enumerate(JobStatus.ordered())}
    df["_order"] = df["status"].map(order)
    df = df.sort_values(["_order", "dateAdded"], kind="stable").drop(columns=["_order"])
    return df.reset_index(drop=True)


def export_to_csv(path: str, jobs: List[Job], status: Optional[JobStatus] = None) -> int:
    """
    Export jobs to a CSV file.

    Returns number of rows exported.
    """
    if status is not None:
        jobs = [job for job in jobs if job.status == status]
    if not jobs:
        return 0

    df = jobs_to_dataframe(jobs)
    df.to_csv(path, index=False, encoding="utf-8")
    return len(df)
