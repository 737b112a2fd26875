"""
JSearch API response models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel

from jobtracker.models import JobSource, ScrapedJob, normalize_text


class JSearchJob(BaseModel):
    job_title: Optional[str] = None
    employer_name: Optional[str] = None
    job_city: Optional[str] = None
    job_state: Optional[str] = None
    job_country: Optional[str] = None
    job_min_salary: Optional[float] = None
    job_max_salary: Optional[float] = None
    job_apply_link: Optional[str] = None
    job_description: Optional[str] = None
    job_posted_at_datetime_utc: Optional[str] = None
    job_employment_type: Optional[str] = None
    job_publisher: Optional[str] = None

    def to_scraped_job(self) -> ScrapedJob:
        return ScrapedJob(
            title=normalize_text(self.job_title or "") or "Unknown Title",
            company=normalize_text(self.employer_name or "") or "Unknown Company",
            city=self.job_city or "",
            state=self.job_state or "",
            min_salary=self.job_min_salary,
            max_salary=self.job_max_salary,
            apply_link=self.job_apply_link or "",
            description=self.job_description or "",
            posted_at=parse_posted_at(self.job_posted_at_datetime_utc),
            employment_type=self.job_employment_type,
            source=JobSource.from_publisher(self.job_publisher),
        )


class JSearchResponse(BaseModel):
    status: str
    request_id: Optional[str] = None
    data: List[JSearchJob]


def parse_posted_at(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 posting time (with or without fractional seconds)."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
