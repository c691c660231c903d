import json

import pytest
import requests

from gitflux.errors import (
    ApiResult,
    ErrorKind,
    MESSAGE_TEMPLATES,
    classify_exception,
    classify_response,
    extract_rate_limit,
    format_error_message,
    rate_limit_reset_in,
)
from gitflux.exceptions import ApiError, NotFoundError, RateLimitError
from gitflux.models import RateLimitInfo


def make_response(status, body=None, headers=None, reason="Error"):
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def rate_headers(remaining, reset=1700000000, limit=5000):
    return {
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset),
        "X-RateLimit-Limit": str(limit),
    }


@pytest.mark.parametrize(
    "status, kind",
    [
        (404, ErrorKind.NOT_FOUND),
        (429, ErrorKind.RATE_LIMIT_EXCEEDED),
        (422, ErrorKind.VALIDATION_ERROR),
        (500, ErrorKind.SERVICE_UNAVAILABLE),
        (502, ErrorKind.SERVICE_UNAVAILABLE),
        (503, ErrorKind.SERVICE_UNAVAILABLE),
        (400, ErrorKind.UNEXPECTED),
        (401, ErrorKind.UNEXPECTED),
    ],
)
def test_status_codes_map_to_kinds(status, kind):
    failure = classify_response(make_response(status))

    assert failure.kind is kind
    assert failure.status_code == status


def test_successful_response_is_not_a_failure():
    assert classify_response(make_response(200, reason="OK")) is None


def test_forbidden_with_exhausted_quota_is_rate_limit():
    failure = classify_response(make_response(403, headers=rate_headers(0)))

    assert failure.kind is ErrorKind.RATE_LIMIT_EXCEEDED
    assert failure.rate_limit.remaining == 0


def test_forbidden_mentioning_rate_limit_is_rate_limit():
    body = {"message": "You have exceeded a secondary rate limit."}
    failure = classify_response(make_response(403, body=body, headers=rate_headers(10)))

    assert failure.kind is ErrorKind.RATE_LIMIT_EXCEEDED


def test_plain_forbidden_is_access_forbidden():
    body = {"message": "Resource not accessible by integration"}
    failure = classify_response(make_response(403, body=body, headers=rate_headers(10)))

    assert failure.kind is ErrorKind.ACCESS_FORBIDDEN


def test_classify_exception():
    assert classify_exception(requests.ConnectionError("refused")).kind is ErrorKind.NETWORK_ERROR
    assert classify_exception(requests.Timeout("slow")).kind is ErrorKind.NETWORK_ERROR
    assert classify_exception(requests.TooManyRedirects("loop")).kind is ErrorKind.UNEXPECTED


def test_only_transient_kinds_are_retryable():
    retryable = {kind for kind in ErrorKind if kind.retryable}

    assert retryable == {ErrorKind.SERVICE_UNAVAILABLE, ErrorKind.NETWORK_ERROR}


def test_extract_rate_limit():
    info = extract_rate_limit(make_response(200, headers=rate_headers(42, reset=123, limit=60)).headers)

    assert info == RateLimitInfo(remaining=42, reset=123, limit=60)
    assert extract_rate_limit({}) is None
    assert extract_rate_limit({"X-RateLimit-Remaining": "lots"}) is None
    assert extract_rate_limit({"X-RateLimit-Remaining": "7"}).limit == 5000


@pytest.mark.parametrize(
    "offset, expected",
    [
        (-10, "Now"),
        (0, "Now"),
        (30, "1 minute"),
        (60, "1 minute"),
        (600, "10 minutes"),
        (3600, "1 hour"),
        (3601, "2 hours"),
        (7200, "2 hours"),
    ],
)
def test_rate_limit_reset_in(offset, expected):
    now = 1_700_000_000
    info = RateLimitInfo(remaining=0, reset=now + offset, limit=5000)

    assert rate_limit_reset_in(info, now=now) == expected


def test_reset_in_unknown_without_metadata():
    assert rate_limit_reset_in(None) == "Unknown"


def test_messages_are_distinct_and_mention_context():
    messages = {format_error_message(kind, "fetching branches") for kind in ErrorKind}

    assert len(messages) == len(ErrorKind) == len(MESSAGE_TEMPLATES)
    assert all("fetching branches" in message for message in messages)


def test_rate_limit_message_includes_reset_countdown():
    message = format_error_message(ErrorKind.RATE_LIMIT_EXCEEDED)

    assert "resets in Unknown" in message
    assert "fetching data from GitHub" in message


def test_unwrap():
    assert ApiResult(data=[1]).unwrap() == [1]

    with pytest.raises(NotFoundError) as excinfo:
        ApiResult.failure(ErrorKind.NOT_FOUND, status_code=404).unwrap("fetching commits")

    assert "fetching commits" in str(excinfo.value)
    assert excinfo.value.status_code == 404
    assert isinstance(excinfo.value, ApiError)

    with pytest.raises(RateLimitError):
        ApiResult.failure(ErrorKind.RATE_LIMIT_EXCEEDED).unwrap()
