import pytest

from gitflux.cancellation import CancellationToken
from gitflux.errors import ApiResult, ErrorKind
from gitflux.retry import backoff_delay, retry_with_backoff


class ScriptedOperation:
    """Return queued results in order, repeating the last one."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


def unavailable():
    return ApiResult.failure(ErrorKind.SERVICE_UNAVAILABLE, status_code=503)


def test_backoff_delay_doubles():
    assert [backoff_delay(n, 1.0) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert backoff_delay(2, 0.5) == 2.0


def test_retries_service_unavailable_until_success():
    operation = ScriptedOperation(unavailable(), unavailable(), ApiResult(data=["ok"]))

    result = retry_with_backoff(operation, max_retries=3, base_delay=0)

    assert result.ok
    assert result.data == ["ok"]
    assert operation.calls == 3


@pytest.mark.parametrize(
    "kind",
    [ErrorKind.NOT_FOUND, ErrorKind.RATE_LIMIT_EXCEEDED, ErrorKind.ACCESS_FORBIDDEN, ErrorKind.VALIDATION_ERROR],
)
def test_terminal_errors_are_not_retried(kind):
    operation = ScriptedOperation(ApiResult.failure(kind))

    result = retry_with_backoff(operation, max_retries=3, base_delay=0)

    assert result.error.kind is kind
    assert operation.calls == 1


def test_returns_last_failure_when_retries_run_out():
    operation = ScriptedOperation(ApiResult.failure(ErrorKind.NETWORK_ERROR))

    result = retry_with_backoff(operation, max_retries=2, base_delay=0)

    assert result.error.kind is ErrorKind.NETWORK_ERROR
    assert operation.calls == 3


def test_backoff_delays_double_between_attempts(monkeypatch):
    delays = []

    def fake_pause(seconds, token=None):
        delays.append(seconds)
        return False

    monkeypatch.setattr("gitflux.retry.pause", fake_pause)
    operation = ScriptedOperation(unavailable())

    retry_with_backoff(operation, max_retries=3, base_delay=1.0)

    assert delays == [1.0, 2.0, 4.0]
    assert operation.calls == 4


def test_cancelled_before_first_attempt():
    token = CancellationToken()
    token.cancel()
    operation = ScriptedOperation(ApiResult(data=[]))

    result = retry_with_backoff(operation, cancel_token=token)

    assert result.error.kind is ErrorKind.CANCELLED
    assert operation.calls == 0


def test_cancel_during_backoff_stops_retrying():
    token = CancellationToken()

    def operation():
        operation.calls += 1
        token.cancel()
        return unavailable()

    operation.calls = 0

    result = retry_with_backoff(operation, max_retries=3, base_delay=30.0, cancel_token=token)

    assert result.error.kind is ErrorKind.CANCELLED
    assert operation.calls == 1


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        retry_with_backoff(ScriptedOperation(ApiResult(data=1)), max_retries=-1)
