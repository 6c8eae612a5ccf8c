import pytest
import requests

from conftest import FakeResponse, FakeSession
from core.errors import TransportError
from core.transport import RetryingTransport, RetryPolicy, classify_status, exponential_backoff
from models.extraction.schema_definition import FailureKind

URL = "https://api.example.test/v1/chat"


def test_success_on_first_attempt(transport, session, sleeps):
    session.queue(FakeResponse(200, {"choices": [{"message": {"content": "ok" * 60}}]}))
    outcome = transport.call(URL, {"q": 1}, headers={"Authorization": "Bearer k"}, timeout=30)

    assert outcome.ok
    assert outcome.status_code == 200
    assert outcome.attempts == 1
    assert outcome.payload["choices"][0]["message"]["content"].startswith("ok")
    assert sleeps.delays == []
    call = session.calls[0]
    assert call["timeout"] == 30
    assert call["headers"]["Authorization"] == "Bearer k"
    assert call["headers"]["Content-Type"] == "application/json"


def test_three_503s_exhaust_with_2s_then_4s_backoff(transport, session, sleeps):
    session.queue(FakeResponse(503, text="busy"), FakeResponse(503, text="busy"), FakeResponse(503, text="busy"))
    outcome = transport.call(URL, {}, max_attempts=3)

    assert not outcome.ok
    assert len(session.calls) == 3
    assert outcome.attempts == 3
    assert sleeps.delays == [2.0, 4.0]
    assert outcome.delays == [2.0, 4.0]
    assert outcome.elapsed_backoff == 6.0
    assert outcome.failure == FailureKind.SERVER_ERROR
    assert outcome.status_code == 503


def test_rate_limit_then_success(transport, session, sleeps):
    session.queue(FakeResponse(429, text="slow down"), FakeResponse(200, {"ok": True, "pad": "x" * 120}))
    outcome = transport.call(URL, {})

    assert outcome.ok
    assert outcome.attempts == 2
    assert sleeps.delays == [2.0]


def test_client_error_is_fatal_without_retry(transport, session, sleeps):
    session.queue(FakeResponse(401, text="bad key"))
    outcome = transport.call(URL, {})

    assert not outcome.ok
    assert outcome.attempts == 1
    assert outcome.failure == FailureKind.CLIENT_ERROR
    assert sleeps.delays == []


def test_network_error_is_fatal(transport, session, sleeps, connection_error):
    session.queue(connection_error)
    outcome = transport.call(URL, {})

    assert not outcome.ok
    assert outcome.failure == FailureKind.NETWORK
    assert outcome.status_code is None
    assert len(session.calls) == 1
    assert sleeps.delays == []


def test_timeout_is_fatal(transport, session, sleeps):
    session.queue(requests.exceptions.ReadTimeout("read timed out"))
    outcome = transport.call(URL, {})

    assert outcome.failure == FailureKind.TIMEOUT
    assert outcome.attempts == 1
    assert sleeps.delays == []


def test_non_json_success_body_is_invalid(transport, session):
    session.queue(FakeResponse(200, text="<html>gateway</html>"))
    outcome = transport.call(URL, {})

    assert not outcome.ok
    assert outcome.failure == FailureKind.INVALID_BODY
    assert outcome.attempts == 1


def test_never_exceeds_max_attempts_override(session, sleeps):
    transport = RetryingTransport(policy=RetryPolicy(max_attempts=5), session=session, sleep=sleeps)
    session.queue(*[FakeResponse(500, text="boom") for _ in range(5)])
    outcome = transport.call(URL, {}, max_attempts=2)

    assert outcome.attempts == 2
    assert len(session.calls) == 2
    assert sleeps.delays == [2.0]
    assert len(session.responses) == 3


def test_custom_policy_predicate_and_backoff(sleeps):
    session = FakeSession(FakeResponse(404, text="missing"), FakeResponse(200, {"ok": True}))
    policy = RetryPolicy(
        max_attempts=2,
        backoff=lambda attempt: 0.5,
        is_retryable=lambda kind: kind == FailureKind.CLIENT_ERROR,
    )
    outcome = RetryingTransport(policy=policy, session=session, sleep=sleeps).call(URL, {})

    assert outcome.ok
    assert sleeps.delays == [0.5]


def test_raise_for_failure_carries_diagnostics(transport, session):
    session.queue(FakeResponse(400, text="bad request"))
    outcome = transport.call(URL, {})

    try:
        outcome.raise_for_failure("Remedy generation")
    except TransportError as e:
        assert e.status_code == 400
        assert e.failure == "client_error"
        assert e.attempts == 1
        assert "Remedy generation" in str(e)
    else:
        raise AssertionError("TransportError not raised")


def test_classification_and_backoff_helpers():
    assert classify_status(429) == FailureKind.RATE_LIMITED
    assert classify_status(502) == FailureKind.SERVER_ERROR
    assert classify_status(403) == FailureKind.CLIENT_ERROR
    assert classify_status(200) is None
    assert [exponential_backoff(a) for a in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_policy_from_config():
    policy = RetryPolicy.from_config({"max_attempts": 4, "backoff_base": 3})
    assert policy.max_attempts == 4
    assert policy.backoff(2) == 9


def test_zero_attempt_override_is_rejected(transport, session):
    with pytest.raises(ValueError):
        transport.call(URL, {}, max_attempts=0)
    assert session.calls == []


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
