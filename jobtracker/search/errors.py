"""
Errors raised by the job search client.

Messages are meant to be shown to the user as-is.
"""

from __future__ import annotations


class JobSearchError(Exception):
    """Base class for job search failures."""

    message = "Job search failed."

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


class MissingAPIKeyError(JobSearchError):
    message = "API key not configured. Please add your RapidAPI key in settings."


class InvalidAPIKeyError(JobSearchError):
    message = "Invalid API key. Please check your RapidAPI key in settings."


class RateLimitError(JobSearchError):
    message = "API rate limit exceeded. Free tier allows 500 requests/month."


class ServerError(JobSearchError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Server error (status code: {status_code}).")


class MalformedResponseError(JobSearchError):
    message = "Received an invalid response from the server."


class SearchTimeoutError(JobSearchError):
    message = "The job search timed out. Please try again."


class NetworkError(JobSearchError):
    def __init__(self, reason: str):
        super().__init__(f"Network error: {reason}")
