"""
Resilience envelope for cross-service calls.

Every remote call runs as ``retry(circuit_breaker(call))`` under an optional
overall ``Deadline``:

- RetryPolicy: bounded attempts with jittered exponential backoff. Only
  failures flagged retryable (transport errors, timeouts, 5xx) are retried.
- CircuitBreaker: rolling window of call outcomes per named call site. Opens
  when the window is full and the failure ratio exceeds the threshold, fails
  fast while open, and admits a single trial call once the open period has elapsed.
- Deadline: budget shared by every child call of one protocol run.
"""

import random
import threading
import time
from collections import deque
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

from loguru import logger

from src.config import settings
from src.core.exceptions import RemoteCallError, ResponseStatus, ServiceError

T = TypeVar("T")


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


def is_failure(exc: BaseException) -> bool:
    """Whether an error counts against the health of the called service"""
    if isinstance(exc, RemoteCallError):
        return exc.retryable
    if isinstance(exc, ServiceError):
        return exc.status_code >= 500
    return True


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, RemoteCallError) and exc.retryable


class Deadline:
    """Overall time budget of one protocol run"""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def timeout_for(self, call_timeout: float) -> float:
        return min(call_timeout, self.remaining())

    def check(self, operation: str) -> None:
        if self.expired:
            raise ServiceError(
                ResponseStatus.SERVICE_UNAVAILABLE,
                f"Deadline of {self.seconds:g}s exceeded before {operation}",
            )


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        failure_rate_threshold: float = 0.5,
        window_size: int = 20,
        open_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_rate_threshold = failure_rate_threshold
        self.window_size = window_size
        self.open_seconds = open_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._outcomes = deque(maxlen=window_size)
        self._state = BreakerState.CLOSED
        self._opened_at: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._refresh()
            return self._state

    def failure_rate(self) -> float:
        with self._lock:
            if not self._outcomes:
                return 0.0
            return self._outcomes.count(False) / len(self._outcomes)

    def acquire(self) -> None:
        """Admit a call or fail fast with ServiceUnavailable"""
        with self._lock:
            self._refresh()
            if self._state == BreakerState.OPEN:
                raise ServiceError(ResponseStatus.SERVICE_UNAVAILABLE, f"Circuit '{self.name}' is open")
            if self._state == BreakerState.HALF_OPEN:
                if self._trial_in_flight:
                    raise ServiceError(
                        ResponseStatus.SERVICE_UNAVAILABLE, f"Circuit '{self.name}' is half-open, trial call in flight"
                    )
                self._trial_in_flight = True

    def record_success(self) -> None:
        with self._lock:
            if self._state == BreakerState.HALF_OPEN:
                logger.info("Circuit '{}' closed after successful trial call", self.name)
                self._state = BreakerState.CLOSED
                self._outcomes.clear()
                self._trial_in_flight = False
                return
            self._outcomes.append(True)
            self._evaluate()

    def record_failure(self) -> None:
        with self._lock:
            if self._state == BreakerState.HALF_OPEN:
                self._trip()
                return
            self._outcomes.append(False)
            self._evaluate()

    def call(self, operation: Callable[[], T]) -> T:
        self.acquire()
        try:
            result = operation()
        except Exception as exc:
            if is_failure(exc):
                self.record_failure()
            else:
                self.record_success()
            raise
        self.record_success()
        return result

    def _evaluate(self) -> None:
        """Trip once the window is full and its failure ratio exceeds the threshold"""
        if len(self._outcomes) < self.window_size:
            return
        if self._outcomes.count(False) / self.window_size > self.failure_rate_threshold:
            self._trip()

    def _trip(self) -> None:
        logger.warning("Circuit '{}' opened for {}s", self.name, self.open_seconds)
        self._state = BreakerState.OPEN
        self._opened_at = self._clock()
        self._outcomes.clear()
        self._trial_in_flight = False

    def _refresh(self) -> None:
        if self._state == BreakerState.OPEN and self._clock() - self._opened_at >= self.open_seconds:
            self._state = BreakerState.HALF_OPEN
            self._trial_in_flight = False


class CircuitBreakerRegistry:
    """One breaker per named call site"""

    def __init__(self, **defaults):
        self._defaults = defaults
        self._lock = threading.Lock()
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, name: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = self._breakers[name] = CircuitBreaker(name, **self._defaults)
            return breaker

    def reset(self) -> None:
        with self._lock:
            self._breakers.clear()


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 3,
        initial_backoff: float = 0.1,
        multiplier: float = 2.0,
        jitter: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.multiplier = multiplier
        self.jitter = jitter
        self.sleep = sleep

    def compute_backoff(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt"""
        base = self.initial_backoff * (self.multiplier ** (attempt - 1))
        return base * (1 + random.uniform(-self.jitter, self.jitter))

    def run(
        self,
        name: str,
        operation: Callable[[], T],
        breaker: Optional[CircuitBreaker] = None,
        deadline: Optional[Deadline] = None,
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            if deadline is not None:
                deadline.check(name)
            try:
                if breaker is not None:
                    return breaker.call(operation)
                return operation()
            except ServiceError as exc:
                if not is_retryable(exc) or attempt >= self.max_attempts:
                    raise
                delay = self.compute_backoff(attempt)
                if deadline is not None and deadline.remaining() <= delay:
                    raise
                logger.warning(
                    "{} failed (attempt {}/{}): {}; retrying in {:.3f}s",
                    name, attempt, self.max_attempts, exc.message, delay,
                )
                self.sleep(delay)


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.RETRY_MAX_ATTEMPTS,
        initial_backoff=settings.RETRY_INITIAL_BACKOFF_SECONDS,
        multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
        jitter=settings.RETRY_JITTER,
    )


circuit_breakers = CircuitBreakerRegistry(
    failure_rate_threshold=settings.BREAKER_FAILURE_RATE_THRESHOLD,
    window_size=settings.BREAKER_WINDOW_SIZE,
    open_seconds=settings.BREAKER_OPEN_SECONDS,
)
