"""
Retry orchestration for external AI calls

Every model call in the pipeline goes through RetryOrchestrator.run();
this module is the only place retry policy is decided.
"""

import asyncio
import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, FrozenSet, Optional, TypeVar

import httpx
from google.api_core import exceptions as core_exceptions
from google.genai import errors as genai_errors

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ErrorKind(enum.Enum):
    """Classification of a failed external call"""
    RATE_LIMITED = 'rate_limited'
    TRANSIENT = 'transient'
    MALFORMED = 'malformed'
    FATAL = 'fatal'


class AIServiceError(Exception):
    """External call failure tagged with its ErrorKind"""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.FATAL, attempts: int = 1):
        super().__init__(message)
        self.kind = kind
        self.attempts = attempts

    @property
    def is_fatal(self) -> bool:
        return self.kind is ErrorKind.FATAL


_RATE_LIMIT_CODES = {429, 503}
_RATE_LIMIT_STATUSES = {'RESOURCE_EXHAUSTED', 'TOO_MANY_REQUESTS'}
_RATE_LIMIT_MARKERS = ('429', 'QUOTA', 'RESOURCE_EXHAUSTED', '503')

_TRANSIENT_CODES = {500, 502, 504}
_TRANSIENT_STATUSES = {'UNAVAILABLE', 'INTERNAL', 'DEADLINE_EXCEEDED'}

_MALFORMED_CODES = {400}
_MALFORMED_STATUSES = {'INVALID_ARGUMENT', 'FAILED_PRECONDITION'}


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _signatures(error: Any):
    """
    Collect (code, status, message) triples from the shapes errors come in:
    SDK exceptions, objects with status/code attributes, dicts, a nested
    `error` object and plain strings.
    """
    if isinstance(error, str):
        return [(None, None, error)]

    found = []
    candidates = [error]
    nested = error.get('error') if isinstance(error, dict) else getattr(error, 'error', None)
    if nested is not None and nested is not error:
        candidates.append(nested)

    for candidate in candidates:
        if isinstance(candidate, str):
            found.append((None, None, candidate))
            continue
        if isinstance(candidate, dict):
            getter = candidate.get
        else:
            def getter(name, _obj=candidate):
                return getattr(_obj, name, None)

        code = _as_int(getter('code'))
        raw_status = getter('status')
        status_code = _as_int(raw_status)
        if code is None and status_code is not None:
            code = status_code
        status = raw_status.upper() if isinstance(raw_status, str) and status_code is None else None
        message = getter('message')
        found.append((code, status, message if isinstance(message, str) else None))

    if not isinstance(error, dict):
        found.append((None, None, str(error)))
    return found


def classify_error(error: Any) -> ErrorKind:
    """Map any raised error (or error payload) to an ErrorKind"""
    if isinstance(error, AIServiceError):
        return error.kind

    if isinstance(error, (core_exceptions.ResourceExhausted,
                          core_exceptions.TooManyRequests,
                          core_exceptions.ServiceUnavailable)):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, (asyncio.TimeoutError, httpx.TransportError,
                          core_exceptions.DeadlineExceeded,
                          core_exceptions.InternalServerError)):
        return ErrorKind.TRANSIENT

    signatures = _signatures(error)

    for code, status, message in signatures:
        if code in _RATE_LIMIT_CODES or status in _RATE_LIMIT_STATUSES:
            return ErrorKind.RATE_LIMITED
        if message and any(marker in message.upper() for marker in _RATE_LIMIT_MARKERS):
            return ErrorKind.RATE_LIMITED

    for code, status, _ in signatures:
        if code in _TRANSIENT_CODES or status in _TRANSIENT_STATUSES:
            return ErrorKind.TRANSIENT
        if code in _MALFORMED_CODES or status in _MALFORMED_STATUSES:
            return ErrorKind.MALFORMED

    if isinstance(error, genai_errors.ServerError):
        return ErrorKind.TRANSIENT
    if isinstance(error, ValueError):
        return ErrorKind.MALFORMED

    return ErrorKind.FATAL


@dataclass
class RetryPolicy:
    """Backoff configuration (delays in seconds)"""
    max_attempts: int = 7
    base_delay: float = 15.0
    max_jitter: float = 2.0
    retry_on: FrozenSet[ErrorKind] = field(
        default_factory=lambda: frozenset({ErrorKind.RATE_LIMITED})
    )

    def backoff(self, attempt: int, jitter: float) -> float:
        return self.base_delay * (2 ** attempt) + jitter


class RetryOrchestrator:
    """
    Exponential backoff around an async operation

    - Rate-limit errors are retried with base_delay * 2^attempt + jitter
    - Other errors propagate immediately
    - Exhausted retries raise the last error as AIServiceError
    """

    def __init__(self, policy: Optional[RetryPolicy] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 jitter: Optional[Callable[[float], float]] = None):
        self.policy = policy or RetryPolicy()
        if self.policy.max_attempts < 1:
            raise ValueError("RetryPolicy.max_attempts must be at least 1")
        self._sleep = sleep
        self._jitter = jitter or (lambda upper: random.uniform(0, upper))

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "AI call") -> T:
        """
        Execute operation, retrying on classified rate limits

        Returns:
            The operation's result
        """
        attempts = self.policy.max_attempts

        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as e:
                kind = classify_error(e)
                retryable = kind in self.policy.retry_on
                last_attempt = attempt == attempts - 1

                if not retryable or last_attempt:
                    if retryable:
                        logger.error(f"{label}: giving up after {attempt + 1} attempts ({kind.value})")
                    if isinstance(e, AIServiceError):
                        e.attempts = attempt + 1
                        raise
                    raise AIServiceError(f"{label} failed: {e}", kind=kind, attempts=attempt + 1) from e

                delay = self.policy.backoff(attempt, self._jitter(self.policy.max_jitter))
                logger.warning(
                    f"{label}: {kind.value} error, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                await self._sleep(delay)

        # range() above always returns or raises
        raise AIServiceError(f"{label} failed", kind=ErrorKind.FATAL)
