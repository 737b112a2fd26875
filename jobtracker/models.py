"""
Core data models for JobTracker.

Provides:
- Job: a tracked job application (the unit of sync)
- JobStatus: ordered Kanban stages
- ScrapedJob / JobSource: results from the external job search
- SearchCriteria / DatePostedFilter: saved search preferences
"""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SnapshotDecodeError(ValueError):
    """Raised when a persisted snapshot cannot be decoded."""


# ----------------------------- Enums -----------------------------

class JobStatus(str, Enum):
    """Kanban stages, in board order."""
    WISHLIST = "Wishlist"
    APPLIED = "Applied"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    REJECTED = "Rejected"

    @property
    def emoji(self) -> str:
        return _STATUS_EMOJI[self]

    @classmethod
    def ordered(cls) -> List["JobStatus"]:
        return list(cls)

    @classmethod
    def from_text(cls, text: Any) -> "JobStatus":
        """Parse a status value, falling back to WISHLIST for unknown values."""
        t = str(text or "").strip().lower()
        for status in cls:
            if status.value.lower() == t or status.name.lower() == t:
                return status
        return cls.WISHLIST


_STATUS_EMOJI = {
    JobStatus.WISHLIST: "🎯",
    JobStatus.APPLIED: "📤",
    JobStatus.INTERVIEWING: "💬",
    JobStatus.OFFER: "🎉",
    JobStatus.REJECTED: "❌",
}


class JobSource(str, Enum):
    """Publisher a search result came from."""
    LINKEDIN = "LinkedIn"
    INDEED = "Indeed"
    GLASSDOOR = "Glassdoor"
    ZIPRECRUITER = "ZipRecruiter"
    UNKNOWN = "Unknown"

    @classmethod
    def from_publisher(cls, publisher: Optional[str]) -> "JobSource":
        """Infer the source from a free-form publisher name."""
        p = (publisher or "").lower()
        if not p:
            return cls.UNKNOWN
        if "linkedin" in p:
            return cls.LINKEDIN
        if "indeed" in p:
            return cls.INDEED
        if "glassdoor" in p:
            return cls.GLASSDOOR
        if "ziprecruiter" in p:
            return cls.ZIPRECRUITER
        return cls.UNKNOWN


class DatePostedFilter(str, Enum):
    """Recency filter for job search."""
    ALL = "all"
    TODAY = "today"
    THREE_DAYS = "3days"
    WEEK = "week"
    MONTH = "month"

    @property
    def display_name(self) -> str:
        return {
            DatePostedFilter.ALL: "Any time",
            DatePostedFilter.TODAY: "Today",
            DatePostedFilter.THREE_DAYS: "Last 3 days",
            DatePostedFilter.WEEK: "This week",
            DatePostedFilter.MONTH: "This month",
        }[self]

    @property
    def api_value(self) -> str:
        return self.value


# ----------------------------- Utilities -----------------------------

def normalize_text(s: str) -> str:
    """Collapse whitespace and strip."""
    return re.sub(r"\s+", " ", (s or "")).strip()


def truncate_ms(dt: datetime) -> datetime:
    """Force UTC and drop sub-millisecond precision so timestamps survive a round trip."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def now_utc() -> datetime:
    """Current UTC datetime at millisecond resolution."""
    return truncate_ms(datetime.now(timezone.utc))


def format_timestamp(dt: datetime) -> str:
    """Sortable ISO 8601 UTC form, e.g. 2024-05-01T09:30:00.123Z."""
    dt = truncate_ms(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO 8601 timestamp (with or without fractional seconds).

    Raises SnapshotDecodeError if the value is not a valid timestamp.
    """
    if not isinstance(value, str) or not value.strip():
        raise SnapshotDecodeError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return truncate_ms(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        # OverflowError: in range locally, out of range once shifted to UTC
        raise SnapshotDecodeError(f"Invalid timestamp: {value!r}")


def new_id() -> str:
    return str(uuid.uuid4())


# ----------------------------- Job -----------------------------

@dataclass
class Job:
    """
    A tracked job application.

    Identity (``id``) is immutable. ``last_modified`` is refreshed by
    JobStore on every mutation and drives sync reconciliation.
    """

    company: str
    role: str
    location: str = ""
    salary: str = ""
    status: JobStatus = JobStatus.WISHLIST
    url: str = ""
    notes: str = ""
    id: str = field(default_factory=new_id)
    date_added: datetime = field(default_factory=now_utc)
    last_modified: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.status, JobStatus):
            self.status = JobStatus.from_text(self.status)
        self.date_added = truncate_ms(self.date_added)
        if self.last_modified is None:
            self.last_modified = self.date_added
        self.last_modified = truncate_ms(self.last_modified)
        if self.last_modified < self.date_added:
            self.last_modified = self.date_added

    def touched(self, when: Optional[datetime] = None) -> "Job":
        """Return a copy with ``last_modified`` set to ``when`` (default: now)."""
        return replace(self, last_modified=when or now_utc())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON shape (keys are shared with other replicas)."""
        return {
            "id": self.id,
            "company": self.company,
            "role": self.role,
            "location": self.location,
            "salary": self.salary,
            "status": self.status.value,
            "url": self.url,
            "notes": self.notes,
            "dateAdded": format_timestamp(self.date_added),
            "lastModified": format_timestamp(self.last_modified),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Job":
        """
        Decode a persisted record.

        Missing optional fields default; a record without ``lastModified``
        (written by older versions) uses ``dateAdded``.
        """
        if not isinstance(data, dict):
            raise SnapshotDecodeError("Job record must be an object")
        for key in ("id", "company", "role", "dateAdded"):
            if key not in data:
                raise SnapshotDecodeError(f"Job record missing {key!r}")
        job_id = data["id"]
        if not isinstance(job_id, str) or not job_id.strip():
            raise SnapshotDecodeError(f"Invalid job id: {job_id!r}")

        date_added = parse_timestamp(data["dateAdded"])
        last_modified = data.get("lastModified")
        return cls(
            id=job_id,
            company=_text(data.get("company")),
            role=_text(data.get("role")),
            location=_text(data.get("location")),
            salary=_text(data.get("salary")),
            status=JobStatus.from_text(data.get("status")),
            url=_text(data.get("url")),
            notes=_text(data.get("notes")),
            date_added=date_added,
            last_modified=parse_timestamp(last_modified) if last_modified else date_added,
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def jobs_to_json(jobs: List[Job]) -> List[Dict[str, Any]]:
    return [job.to_dict() for job in jobs]


def jobs_from_json(data: Any) -> List[Job]:
    """Decode a snapshot (a JSON array of job records)."""
    if not isinstance(data, list):
        raise SnapshotDecodeError("Snapshot must be a JSON array")
    return [Job.from_dict(item) for item in data]


# ----------------------------- Search -----------------------------

@dataclass
class SearchCriteria:
    """Saved search preferences."""
    query: str = ""
    location: str = ""
    remote_only: bool = False
    date_posted: DatePostedFilter = DatePostedFilter.ALL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "location": self.location,
            "remoteOnly": self.remote_only,
            "datePosted": self.date_posted.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SearchCriteria":
        if not isinstance(data, dict):
            return cls()
        try:
            date_posted = DatePostedFilter(data.get("datePosted", "all"))
        except ValueError:
            date_posted = DatePostedFilter.ALL
        return cls(
            query=_text(data.get("query")),
            location=_text(data.get("location")),
            remote_only=bool(data.get("remoteOnly", False)),
            date_posted=date_posted,
        )


@dataclass
class ScrapedJob:
    """A posting returned by the job search API."""

    title: str
    company: str
    city: str = ""
    state: str = ""
    min_salary: Optional[float] = None
    max_salary: Optional[float] = None
    apply_link: str = ""
    description: str = ""
    posted_at: Optional[datetime] = None
    employment_type: Optional[str] = None
    source: JobSource = JobSource.UNKNOWN
    id: str = field(default_factory=new_id)

    @property
    def location(self) -> str:
        return ", ".join(part for part in (self.city, self.state) if part)

    @property
    def salary_range(self) -> str:
        lo, hi = _salary_amount(self.min_salary), _salary_amount(self.max_salary)
        if lo is not None and hi is not None:
            return f"${int(lo):,} - ${int(hi):,}"
        if lo is not None:
            return f"${int(lo):,}"
        if hi is not None:
            return f"Up to ${int(hi):,}"
        return ""

    def to_tracker_job(self) -> Job:
        """Convert to a new Wishlist job for the board."""
        return Job(
            company=self.company,
            role=self.title,
            location=self.location,
            salary=self.salary_range,
            status=JobStatus.WISHLIST,
            url=self.apply_link,
            notes=self.employment_type or "",
        )


def _salary_amount(value: Optional[float]) -> Optional[float]:
    # json.loads accepts NaN and Infinity
    if value is None or not math.isfinite(value):
        return None
    return value
