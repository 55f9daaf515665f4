"""Serialized per-route-class rate gate for upstream requests.

Every upstream request passes through ``RateGate.acquire_and_stamp`` first.
The gate keeps, per route-class, the instant of the last request it let
through and suspends callers until the configured minimum delay has passed.
The stamp is written whether or not the upstream call later succeeds, so a
failing upstream still consumes a slot.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

from tradeproxy.app.core.logging import get_log_context, get_logger

logger = get_logger(__name__)


@dataclass
class BackoffPolicy:
    """Exponential growth of the gate spacing after consecutive failures.

    delay = min(min_delay * (exponential_base ^ failures), max(max_delay, min_delay))

    Attributes:
        enabled: When False the spacing is always the plain minimum delay
        exponential_base: Growth factor per consecutive failure
        max_delay: Ceiling for the grown delay in seconds

    Example:
        >>> policy = BackoffPolicy(enabled=True, exponential_base=2.0, max_delay=60.0)
        >>> policy.calculate_delay(min_delay=5.0, failures=2)
        20.0
    """

    enabled: bool = False
    exponential_base: float = 2.0
    max_delay: float = 60.0

    def calculate_delay(self, min_delay: float, failures: int) -> float:
        if not self.enabled or failures <= 0:
            return min_delay
        delay = min_delay * (self.exponential_base**failures)
        return min(delay, max(self.max_delay, min_delay))


@dataclass
class RateGateState:
    """Timeline of one route-class."""

    # None means the route-class has never been requested
    last_request_at: Optional[float] = None
    consecutive_failures: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class RateGate:
    """Enforces a minimum spacing between requests of the same route-class.

    Callers of one route-class are serialized through a FIFO lock held across
    the wait and the stamp, so arrival order is departure order and no two
    callers can observe the same ``last_request_at``. Route-classes have
    independent locks and never wait on each other.

    Args:
        clock: Monotonic time source in seconds
        sleep: Coroutine used to suspend the caller
        backoff: Optional spacing growth after upstream failures
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        backoff: Optional[BackoffPolicy] = None,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._backoff = backoff or BackoffPolicy()
        self._states: Dict[str, RateGateState] = {}

    def state(self, route_class: str) -> RateGateState:
        """Return the state of a route-class, creating it on first use."""
        state = self._states.get(route_class)
        if state is None:
            state = RateGateState()
            self._states[route_class] = state
        return state

    def route_classes(self) -> list[str]:
        return list(self._states)

    def effective_delay(self, route_class: str, min_delay: float) -> float:
        """Spacing currently enforced for a route-class, backoff included."""
        state = self.state(route_class)
        return self._backoff.calculate_delay(min_delay, state.consecutive_failures)

    async def acquire_and_stamp(self, route_class: str, min_delay: float) -> float:
        """Wait until ``route_class`` may issue a request, then stamp it.

        Args:
            route_class: Name of the upstream route-class being gated
            min_delay: Minimum spacing between two stamps in seconds

        Returns:
            Seconds spent waiting (0.0 when the caller proceeded immediately)
        """
        state = self.state(route_class)
        async with state.lock:
            delay = self._backoff.calculate_delay(min_delay, state.consecutive_failures)
            waited = 0.0
            if state.last_request_at is not None:
                remaining = delay - (self._clock() - state.last_request_at)
                if remaining > 0:
                    logger.info(
                        f"Rate gate waiting {remaining * 1000:.0f}ms for {route_class}",
                        extra=get_log_context(
                            route_class=route_class, wait_ms=round(remaining * 1000)
                        ),
                    )
                # The event loop may wake a sleeper marginally early.
                while remaining > 0:
                    await self._sleep(remaining)
                    waited += remaining
                    remaining = delay - (self._clock() - state.last_request_at)
            state.last_request_at = self._clock()
            return waited

    def record_failure(self, route_class: str) -> None:
        """Count an upstream failure against the route-class backoff."""
        self.state(route_class).consecutive_failures += 1

    def record_success(self, route_class: str) -> None:
        self.state(route_class).consecutive_failures = 0
