"""
Circuit breaker for calls to the ledger gateway.

Every gateway request runs under a timeout. Consecutive failures open the
circuit so that a synchronization pass fails fast instead of waiting on an
unreachable ledger for every student.

Circuit Breaker States:
- CLOSED: Normal operation, requests pass through
- OPEN: Circuit is tripped, requests fail fast
- HALF_OPEN: Probing whether the gateway has recovered
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from datetime import datetime, timedelta
from enum import Enum
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""
    failure_threshold: int = 5  # Consecutive failures before opening
    recovery_timeout: int = 60  # Seconds before probing in half-open
    success_threshold: int = 1  # Probe successes needed to close again
    timeout: float = 30.0  # Per-call timeout in seconds


@dataclass
class CircuitBreakerMetrics:
    """Counters kept for status reporting."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    timeout_requests: int = 0
    rejected_requests: int = 0
    state_changes: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 1.0
        return self.successful_requests / self.total_requests

    def record_state_change(self, from_state: CircuitState, to_state: CircuitState, reason: str):
        self.state_changes.append({
            'timestamp': datetime.utcnow().isoformat(),
            'from_state': from_state,
            'to_state': to_state,
            'reason': reason
        })


class CircuitBreakerError(Exception):
    """Raised when the circuit is open and the call was not attempted."""
    pass


class CircuitBreakerTimeoutError(Exception):
    """Raised when the wrapped call exceeded the configured timeout."""
    pass


class CircuitBreaker:
    """
    Guards an async callable with a timeout and a failure counter.

    The lock only protects state bookkeeping; the wrapped calls themselves run
    concurrently, so one slow student does not serialize the others.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        success_threshold: int = 1,
        timeout: float = 30.0,
        name: Optional[str] = None
    ):
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            success_threshold=success_threshold,
            timeout=timeout
        )

        self.name = name or f"CircuitBreaker_{id(self)}"
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.next_attempt_time: Optional[datetime] = None
        self.metrics = CircuitBreakerMetrics()
        self._lock = asyncio.Lock()

        logger.info(f"Circuit breaker '{self.name}' initialized with threshold={failure_threshold}")

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Execute ``func(*args, **kwargs)`` through the circuit breaker.

        Raises:
            CircuitBreakerError: When the circuit is open
            CircuitBreakerTimeoutError: When the call times out
            Exception: Any exception raised by the wrapped call
        """
        async with self._lock:
            self.metrics.total_requests += 1
            self._check_state_transition()
            if self.state == CircuitState.OPEN:
                self.metrics.rejected_requests += 1
                raise CircuitBreakerError(f"Circuit breaker '{self.name}' is open")

        try:
            result = await asyncio.wait_for(func(*args, **kwargs), timeout=self.config.timeout)
        except asyncio.TimeoutError:
            async with self._lock:
                self.metrics.timeout_requests += 1
                self._on_failure(f"timeout after {self.config.timeout}s")
            raise CircuitBreakerTimeoutError(f"Request timed out after {self.config.timeout}s")
        except Exception as e:
            async with self._lock:
                self._on_failure(str(e))
            raise

        async with self._lock:
            self._on_success()
        return result

    def _check_state_transition(self):
        if self.state == CircuitState.OPEN and self.next_attempt_time and datetime.utcnow() >= self.next_attempt_time:
            self._transition(CircuitState.HALF_OPEN, "Recovery timeout reached, probing gateway")
            self.success_count = 0

    def _on_success(self):
        self.metrics.successful_requests += 1
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self._transition(CircuitState.CLOSED, f"{self.success_count} successful probes")
                self.next_attempt_time = None
        self.failure_count = 0

    def _on_failure(self, reason: str):
        self.metrics.failed_requests += 1
        self.failure_count += 1
        logger.error(f"Circuit breaker '{self.name}' - call failed: {reason}")

        if self.state == CircuitState.HALF_OPEN or (
            self.state == CircuitState.CLOSED and self.failure_count >= self.config.failure_threshold
        ):
            self.next_attempt_time = datetime.utcnow() + timedelta(seconds=self.config.recovery_timeout)
            self._transition(
                CircuitState.OPEN,
                f"{self.failure_count} failures (threshold {self.config.failure_threshold})"
            )
            logger.warning(
                f"Circuit breaker '{self.name}' OPENED, next attempt at {self.next_attempt_time}"
            )

    def _transition(self, to_state: CircuitState, reason: str):
        old_state = self.state
        self.state = to_state
        self.metrics.record_state_change(old_state, to_state, reason)
        logger.info(f"Circuit breaker '{self.name}' {old_state.value} -> {to_state.value}: {reason}")

    def get_status(self) -> Dict[str, Any]:
        """Get current state and counters."""
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'next_attempt_time': self.next_attempt_time.isoformat() if self.next_attempt_time else None,
            'metrics': {
                'total_requests': self.metrics.total_requests,
                'successful_requests': self.metrics.successful_requests,
                'failed_requests': self.metrics.failed_requests,
                'timeout_requests': self.metrics.timeout_requests,
                'rejected_requests': self.metrics.rejected_requests,
                'success_rate': self.metrics.success_rate,
                'state_changes': self.metrics.state_changes[-10:]
            }
        }
