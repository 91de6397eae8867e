"""
Unit tests for retry orchestration and error classification.
"""
import pytest
from google.api_core import exceptions as core_exceptions

from statement_ledger.core.retry import (
    AIServiceError,
    ErrorKind,
    RetryOrchestrator,
    RetryPolicy,
    classify_error,
)


class StatusError(Exception):
    """Provider-style error exposing status/code attributes."""

    def __init__(self, message="", status=None, code=None, error=None):
        super().__init__(message)
        self.status = status
        self.code = code
        self.error = error


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestClassifyError:
    """Tests for mapping raw errors to ErrorKind."""

    @pytest.mark.parametrize("error", [
        StatusError("Too many requests", code=429),
        StatusError("busy", status="RESOURCE_EXHAUSTED"),
        StatusError("overloaded", status=503),
        StatusError("wrapped", error={"code": 429, "message": "Resource exhausted"}),
        RuntimeError("You exceeded your current quota"),
        "429 Too Many Requests",
        core_exceptions.ResourceExhausted("quota"),
    ])
    def test_rate_limited_shapes(self, error):
        assert classify_error(error) is ErrorKind.RATE_LIMITED

    def test_transient(self):
        assert classify_error(StatusError("boom", code=500)) is ErrorKind.TRANSIENT
        assert classify_error(core_exceptions.DeadlineExceeded("slow")) is ErrorKind.TRANSIENT

    def test_malformed(self):
        assert classify_error(StatusError("bad", status="INVALID_ARGUMENT")) is ErrorKind.MALFORMED
        assert classify_error(ValueError("bad schema")) is ErrorKind.MALFORMED

    def test_fatal(self):
        assert classify_error(StatusError("denied", code=403)) is ErrorKind.FATAL
        assert classify_error(KeyError("missing")) is ErrorKind.FATAL


class TestRetryOrchestrator:
    """Tests for backoff behavior."""

    @pytest.fixture
    def sleep(self) -> RecordingSleep:
        return RecordingSleep()

    @pytest.fixture
    def orchestrator(self, sleep) -> RetryOrchestrator:
        return RetryOrchestrator(RetryPolicy(), sleep=sleep, jitter=lambda upper: 0.0)

    @pytest.mark.asyncio
    async def test_succeeds_after_two_rate_limits(self, orchestrator, sleep):
        """Test two 429s then success: exactly two backoff sleeps."""
        outcomes = [StatusError("rate", code=429), StatusError("rate", code=429), "ok"]

        async def operation():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await orchestrator.run(operation) == "ok"
        assert sleep.delays == [15.0, 30.0]

    @pytest.mark.asyncio
    async def test_non_rate_limit_propagates_immediately(self, orchestrator, sleep):
        calls = []

        async def operation():
            calls.append(1)
            raise StatusError("denied", code=403)

        with pytest.raises(AIServiceError) as info:
            await orchestrator.run(operation)

        assert info.value.kind is ErrorKind.FATAL
        assert isinstance(info.value.__cause__, StatusError)
        assert len(calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self, sleep):
        orchestrator = RetryOrchestrator(
            RetryPolicy(max_attempts=3, base_delay=1.0), sleep=sleep, jitter=lambda upper: 0.5
        )
        errors = [StatusError(f"rate {i}", code=429) for i in range(3)]

        async def operation():
            raise errors.pop(0)

        with pytest.raises(AIServiceError) as info:
            await orchestrator.run(operation)

        assert info.value.kind is ErrorKind.RATE_LIMITED
        assert info.value.attempts == 3
        assert "rate 2" in str(info.value)
        assert sleep.delays == [1.5, 2.5]

    @pytest.mark.asyncio
    async def test_retry_on_transient_when_configured(self, sleep):
        policy = RetryPolicy(base_delay=1.0, retry_on=frozenset({ErrorKind.RATE_LIMITED, ErrorKind.TRANSIENT}))
        orchestrator = RetryOrchestrator(policy, sleep=sleep, jitter=lambda upper: 0.0)
        outcomes = [StatusError("boom", code=502), 42]

        async def operation():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await orchestrator.run(operation) == 42
        assert sleep.delays == [1.0]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryOrchestrator(RetryPolicy(max_attempts=0))
