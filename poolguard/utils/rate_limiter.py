import asyncio
import time
from poolguard.utils.logging_config import logger

class AsyncRateLimiter:
    """
    Token bucket rate limiter.
    """
    def __init__(self, max_calls: int, period: float = 1.0):
        if max_calls < 1 or period <= 0:
            raise ValueError("max_calls must be >= 1 and period > 0")
        self.max_calls = max_calls
        self.period = period
        self.tokens = float(max_calls)
        self.last_updated = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self):
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_updated

            # Replenish tokens
            new_tokens = elapsed * (self.max_calls / self.period)
            self.tokens = min(self.max_calls, self.tokens + new_tokens)
            self.last_updated = now

            if self.tokens >= 1:
                self.tokens -= 1
                return

            # Wait until we have 1 token
            wait_time = (1 - self.tokens) * (self.period / self.max_calls)
            logger.debug(f"Rate limit hit, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)

            # Credit what accrued during the sleep, then spend one token
            now = time.monotonic()
            elapsed = now - self.last_updated
            refilled = min(self.max_calls, self.tokens + elapsed * (self.max_calls / self.period))
            self.tokens = max(0.0, refilled - 1)
            self.last_updated = now
