"""Token bucket rate limiter for WebSocket message throttling."""

import time
from collections.abc import Callable


class TokenBucket:
    """Rate limiter using the token bucket algorithm.

    The bucket refills at ``rate`` tokens per second up to ``burst``. Each
    consume() takes one token and returns False once the bucket is empty.
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()

    @property
    def available(self) -> float:
        return self._tokens

    def consume(self) -> bool:
        """Try to take one token. Returns True if allowed, False if rate-limited."""
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now

        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True
