from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import aiohttp
import pytest

from jobtracker.models import DatePostedFilter, JobSource, SearchCriteria
from jobtracker.search import (
    InvalidAPIKeyError,
    JobSearchClient,
    MalformedResponseError,
    MissingAPIKeyError,
    NetworkError,
    RateLimitError,
    SearchTimeoutError,
    ServerError,
    build_params,
    parse_search_response,
)
from jobtracker.search.client import JSEARCH_HOST, check_status

PAYLOAD = {
    "status": "OK",
    "request_id": "abc",
    "data": [
        {
            "job_title": "Backend Engineer",
            "employer_name": "Acme",
            "job_city": "Austin",
            "job_state": "TX",
            "job_min_salary": 100000,
            "job_max_salary": 150000,
            "job_apply_link": "https://acme.example/apply",
            "job_posted_at_datetime_utc": "2024-05-01T09:30:00.000Z",
            "job_employment_type": "FULLTIME",
            "job_publisher": "LinkedIn",
        },
        {},
    ],
}


class FakeResponse:
    def __init__(self, status=200, body="", error=None):
        self.status = status
        self.body = body
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *args):
        return False

    async def text(self):
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


class FakeSession:
    closed = False

    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return self.response


def _search(response, api_key="secret", **kwargs):
    session = FakeSession(response)
    client = JobSearchClient(api_key, session=session)
    jobs = asyncio.run(client.search_jobs("python developer", **kwargs))
    return jobs, session


# ----------------------------- Request building -----------------------------

def test_build_params_minimal():
    assert build_params("python") == {"query": "python", "page": "1", "num_pages": "1"}


def test_build_params_with_filters():
    params = build_params(
        "python",
        location="Berlin",
        remote_only=True,
        date_posted=DatePostedFilter.THREE_DAYS,
        page=3,
    )

    assert params["location"] == "Berlin"
    assert params["remote_jobs_only"] == "true"
    assert params["date_posted"] == "3days"
    assert params["page"] == "3"


@pytest.mark.parametrize(
    ("status", "error"),
    [(401, InvalidAPIKeyError), (403, InvalidAPIKeyError), (429, RateLimitError), (500, ServerError)],
)
def test_check_status(status, error):
    with pytest.raises(error):
        check_status(status)


def test_server_error_message_includes_status():
    with pytest.raises(ServerError) as exc:
        check_status(502)

    assert exc.value.status_code == 502
    assert str(exc.value) == "Server error (status code: 502)."


# ----------------------------- Response parsing -----------------------------

def test_parse_search_response():
    jobs = parse_search_response(PAYLOAD)

    first, second = jobs
    assert first.title == "Backend Engineer"
    assert first.location == "Austin, TX"
    assert first.salary_range == "$100,000 - $150,000"
    assert first.source == JobSource.LINKEDIN
    assert first.posted_at == datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    assert second.title == "Unknown Title"
    assert second.company == "Unknown Company"
    assert second.source == JobSource.UNKNOWN


@pytest.mark.parametrize("payload", [{"data": []}, {"status": "OK"}, [1, 2], {"status": "OK", "data": "nope"}])
def test_parse_search_response_rejects_unexpected_shape(payload):
    with pytest.raises(MalformedResponseError):
        parse_search_response(payload)


# ----------------------------- Client -----------------------------

def test_missing_api_key_fails_before_any_request():
    session = FakeSession(FakeResponse(body=json.dumps(PAYLOAD)))
    client = JobSearchClient("   ", session=session)

    with pytest.raises(MissingAPIKeyError):
        asyncio.run(client.search_jobs("python"))
    assert session.calls == []


def test_successful_search_sends_auth_headers():
    jobs, session = _search(FakeResponse(body=json.dumps(PAYLOAD)), remote_only=True)

    assert [job.company for job in jobs] == ["Acme", "Unknown Company"]
    call = session.calls[0]
    assert call["headers"]["X-RapidAPI-Key"] == "secret"
    assert call["headers"]["X-RapidAPI-Host"] == JSEARCH_HOST
    assert call["params"]["remote_jobs_only"] == "true"
    assert call["timeout"].total == 30


def test_rate_limit_response():
    with pytest.raises(RateLimitError):
        _search(FakeResponse(status=429))


def test_invalid_json_body():
    with pytest.raises(MalformedResponseError):
        _search(FakeResponse(body="<html>oops</html>"))


def test_undecodable_body():
    with pytest.raises(MalformedResponseError):
        _search(FakeResponse(body=b"\xff\xfe"))


def test_timeout_is_reported_as_timeout():
    with pytest.raises(SearchTimeoutError):
        _search(FakeResponse(error=asyncio.TimeoutError()))


def test_connection_failure_is_a_network_error():
    with pytest.raises(NetworkError) as exc:
        _search(FakeResponse(error=aiohttp.ClientConnectionError("connection refused")))

    assert "connection refused" in str(exc.value)


def test_search_with_saved_criteria():
    session = FakeSession(FakeResponse(body=json.dumps({"status": "OK", "data": []})))
    client = JobSearchClient("secret", session=session)
    criteria = SearchCriteria(query="data engineer", location="Remote", date_posted=DatePostedFilter.WEEK)

    assert asyncio.run(client.search(criteria, page=2)) == []

    params = session.calls[0]["params"]
    assert params["query"] == "data engineer"
    assert params["date_posted"] == "week"
    assert params["page"] == "2"


def test_close_leaves_borrowed_session_open():
    session = FakeSession(FakeResponse())
    client = JobSearchClient("secret", session=session)

    asyncio.run(client.close())

    assert session.closed is False
