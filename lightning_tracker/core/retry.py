"""Retry logic and circuit breaker for external service calls."""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from httpx import ConnectError, HTTPStatusError, NetworkError, TimeoutException
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient transport errors
TRANSIENT_EXCEPTIONS = (
    TimeoutException,
    ConnectError,
    NetworkError,
)


def is_retryable_http_error(exception: BaseException) -> bool:
    """Check if an error is transient (network, timeout, 5xx, 408 or 429)."""
    if isinstance(exception, HTTPStatusError):
        status_code = exception.response.status_code
        if 500 <= status_code < 600:
            return True
        return status_code in (408, 429)
    return isinstance(exception, TRANSIENT_EXCEPTIONS)


def retry_with_backoff(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry transient failures with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts, first call included
        min_wait: Minimum wait time in seconds
        max_wait: Maximum wait time in seconds

    Returns:
        Decorated function with retry logic
    """
    return retry(
        retry=retry_if_exception(is_retryable_http_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying {retry_state.fn.__name__} after {retry_state.outcome.exception()}"
            f" (attempt {retry_state.attempt_number}/{max_attempts})"
        ),
    )


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class _ServiceCircuit:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    successes: int = 0
    opened_at: datetime | None = None


@dataclass
class CircuitBreaker:
    """
    Per-service circuit breaker.

    CLOSED -> OPEN after ``failure_threshold`` consecutive transient failures,
    OPEN -> HALF_OPEN once ``recovery_timeout`` seconds have passed,
    HALF_OPEN -> CLOSED after ``success_threshold`` successes,
    HALF_OPEN -> OPEN on any failure.
    """

    failure_threshold: int = 5
    recovery_timeout: int = 60
    success_threshold: int = 2
    _circuits: dict[str, _ServiceCircuit] = field(default_factory=dict, repr=False)

    def _circuit(self, service: str) -> _ServiceCircuit:
        circuit = self._circuits.setdefault(service, _ServiceCircuit())

        if circuit.state is CircuitState.OPEN and circuit.opened_at is not None:
            if datetime.now(UTC) - circuit.opened_at >= timedelta(seconds=self.recovery_timeout):
                circuit.state = CircuitState.HALF_OPEN
                circuit.successes = 0
                logger.info(f"Circuit breaker for {service}: OPEN -> HALF_OPEN")

        return circuit

    def state(self, service: str) -> CircuitState:
        """Current state for a service."""
        return self._circuit(service).state

    def is_open(self, service: str) -> bool:
        """Check if circuit is open (blocking requests)."""
        return self.state(service) is CircuitState.OPEN

    def record_success(self, service: str) -> None:
        """Record successful request."""
        circuit = self._circuit(service)

        if circuit.state is CircuitState.HALF_OPEN:
            circuit.successes += 1
            if circuit.successes >= self.success_threshold:
                self._circuits[service] = _ServiceCircuit()
                logger.info(f"Circuit breaker for {service}: HALF_OPEN -> CLOSED")
        else:
            circuit.failures = 0

    def record_failure(self, service: str) -> None:
        """Record failed request."""
        circuit = self._circuit(service)

        if circuit.state is CircuitState.HALF_OPEN:
            circuit.state = CircuitState.OPEN
            circuit.opened_at = datetime.now(UTC)
            logger.warning(f"Circuit breaker for {service}: HALF_OPEN -> OPEN")
            return

        circuit.failures += 1
        if circuit.state is CircuitState.CLOSED and circuit.failures >= self.failure_threshold:
            circuit.state = CircuitState.OPEN
            circuit.opened_at = datetime.now(UTC)
            logger.error(
                f"Circuit breaker for {service}: CLOSED -> OPEN "
                f"(failures: {circuit.failures})"
            )

    def reset(self, service: str) -> None:
        """Reset circuit breaker for a service."""
        self._circuits.pop(service, None)
        logger.info(f"Circuit breaker for {service}: RESET")

    def get_stats(self, service: str) -> dict[str, Any]:
        """Get current stats for a service."""
        circuit = self._circuit(service)
        return {
            "state": circuit.state.value,
            "failure_count": circuit.failures,
            "success_count": circuit.successes,
            "opened_at": circuit.opened_at.isoformat() if circuit.opened_at else None,
        }


# Global circuit breaker instance
circuit_breaker = CircuitBreaker(
    failure_threshold=5,
    recovery_timeout=60,
    success_threshold=2,
)


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is open."""

    pass


def with_circuit_breaker(
    service_name: str,
    breaker: CircuitBreaker | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator to add circuit breaker protection to a coroutine function.

    Args:
        service_name: Name of the service (for tracking state)
        breaker: Circuit breaker instance (uses global if None)
    """
    cb = breaker or circuit_breaker

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"{func.__name__} must be a coroutine function")

        async def wrapper(*args: Any, **kwargs: Any) -> T:
            if cb.is_open(service_name):
                raise CircuitBreakerOpenError(f"Circuit breaker open for {service_name}")

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                # Only transient errors count towards opening the circuit
                if is_retryable_http_error(e):
                    cb.record_failure(service_name)
                raise
            cb.record_success(service_name)
            return result

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator
