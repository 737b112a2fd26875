"""
External job search for JobTracker.

Results convert into Wishlist jobs via ScrapedJob.to_tracker_job().
"""

from jobtracker.search.client import JobSearchClient, build_params, parse_search_response
from jobtracker.search.errors import (
    InvalidAPIKeyError,
    JobSearchError,
    MalformedResponseError,
    MissingAPIKeyError,
    NetworkError,
    RateLimitError,
    SearchTimeoutError,
    ServerError,
)

__all__ = [
    "JobSearchClient",
    "build_params",
    "parse_search_response",
    "JobSearchError",
    "MissingAPIKeyError",
    "InvalidAPIKeyError",
    "RateLimitError",
    "ServerError",
    "MalformedResponseError",
    "SearchTimeoutError",
    "NetworkError",
]
