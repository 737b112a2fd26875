"""
Async client for the JSearch job search API (RapidAPI).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from jobtracker.models import DatePostedFilter, ScrapedJob, SearchCriteria
from jobtracker.search.errors import (
    InvalidAPIKeyError,
    MalformedResponseError,
    MissingAPIKeyError,
    NetworkError,
    RateLimitError,
    SearchTimeoutError,
    ServerError,
)
from jobtracker.search.schema import JSearchResponse

logger = logging.getLogger(__name__)

JSEARCH_URL = "https://jsearch.p.rapidapi.com/search"
JSEARCH_HOST = "jsearch.p.rapidapi.com"


def build_params(
    query: str,
    location: str = "",
    remote_only: bool = False,
    date_posted: DatePostedFilter = DatePostedFilter.ALL,
    page: int = 1,
) -> Dict[str, str]:
    """Build JSearch query parameters (optional filters are omitted when unset)."""
    params = {
        "query": query,
        "page": str(max(1, page)),
        "num_pages": "1",
    }
    if location:
        params["location"] = location
    if remote_only:
        params["remote_jobs_only"] = "true"
    date_posted = DatePostedFilter(date_posted)
    if date_posted != DatePostedFilter.ALL:
        params["date_posted"] = date_posted.api_value
    return params


def check_status(status: int) -> None:
    """Map a non-200 HTTP status to a typed error."""
    if status == 200:
        return
    if status in (401, 403):
        raise InvalidAPIKeyError()
    if status == 429:
        raise RateLimitError()
    raise ServerError(status)


def parse_search_response(payload: Any) -> List[ScrapedJob]:
    """Validate a decoded JSearch payload and convert its results."""
    try:
        response = JSearchResponse.model_validate(payload)
    except ValidationError as e:
        logger.debug("Unexpected JSearch payload: %s", e)
        raise MalformedResponseError()
    return [item.to_scraped_job() for item in response.data]


class JobSearchClient:
    """
    JSearch API client with a bounded request timeout.

    Usage:
        async with JobSearchClient(api_key) as client:
            jobs = await client.search_jobs("python developer", remote_only=True)
    """

    def __init__(
        self,
        api_key: str,
        timeout_s: float = 30,
        base_url: str = JSEARCH_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.timeout_s = timeout_s
        self.base_url = base_url
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "JobSearchClient":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def start(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if we created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def search_jobs(
        self,
        query: str,
        location: str = "",
        remote_only: bool = False,
        date_posted: DatePostedFilter = DatePostedFilter.ALL,
        page: int = 1,
    ) -> List[ScrapedJob]:
        """
        Search for job postings.

        Raises a JobSearchError subclass on any failure.
        """
        if not self.api_key:
            raise MissingAPIKeyError()
        if self._session is None:
            await self.start()

        params = build_params(query, location, remote_only, date_posted, page)
        headers = {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": JSEARCH_HOST,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_s)

        try:
            async with self._session.get(
                self.base_url, params=params, headers=headers, timeout=timeout
            ) as resp:
                check_status(resp.status)
                text = await resp.text()
        except asyncio.TimeoutError:
            raise SearchTimeoutError()
        except aiohttp.ClientError as e:
            raise NetworkError(str(e) or type(e).__name__)
        except (UnicodeDecodeError, LookupError):
            # Undecodable body or unknown charset
            raise MalformedResponseError()

        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            raise MalformedResponseError()

        jobs = parse_search_response(payload)
        logger.info("Job search %r page %d returned %d results", query, page, len(jobs))
        return jobs

    async def search(self, criteria: SearchCriteria, page: int = 1) -> List[ScrapedJob]:
        """Search using saved criteria."""
        return await self.search_jobs(
            criteria.query,
            location=criteria.location,
            remote_only=criteria.remote_only,
            date_posted=criteria.date_posted,
            page=page,
        )
