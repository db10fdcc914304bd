# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                           RATE LIMITER MODULE                              ║
# ║    Token bucket implementation for controlling API request frequency       ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# Standard library imports
import time
import threading
from typing import Callable, Dict

# Local application imports
from utils.logging import logger

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ TOKEN BUCKET IMPLEMENTATION                                                ║
# ╚════════════════════════════════════════════════════════════════════════════╝

class TokenBucketRateLimiter:
    # --- TokenBucketRateLimiter ---
    # Token bucket shared by the worker threads issuing Google API requests.
    # Allows bursts of up to max_tokens requests while keeping the long-term
    # average at token_refill_rate requests per second.

    # --- __init__ ---
    # Args:
    #     name: Name of the rate limiter for logging
    #     max_tokens: Maximum number of tokens the bucket can hold
    #     token_refill_rate: Rate at which tokens are added (tokens per second)
    #     clock: Monotonic time source, replaceable in tests
    #     sleep: Blocking sleep, replaceable in tests
    def __init__(
        self,
        name: str,
        max_tokens: float,
        token_refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.name = name
        self.max_tokens = max_tokens
        self.token_refill_rate = token_refill_rate
        self._clock = clock
        self._sleep = sleep

        self.tokens = max_tokens  # Start with a full bucket
        self.last_refill = clock()

        self.lock = threading.Lock()
        self.request_count = 0
        self.throttled_count = 0

        logger.debug(f"Initialized rate limiter '{name}' with {max_tokens} max tokens, "
                     f"refill rate of {token_refill_rate} tokens/sec")

    # --- _refill ---
    # Refill tokens based on elapsed time since last refill. Caller holds the lock.
    def _refill(self):
        now = self._clock()
        elapsed = now - self.last_refill
        self.tokens = min(self.tokens + elapsed * self.token_refill_rate, self.max_tokens)
        self.last_refill = now

    # --- consume ---
    # Take tokens from the bucket, sleeping (outside the lock) until enough
    # have accumulated when wait is True.
    # Args:
    #     tokens: Number of tokens to consume (default 1.0)
    #     wait: If True, block until tokens are available
    # Returns: True if tokens were consumed, False otherwise
    def consume(self, tokens: float = 1.0, wait: bool = True) -> bool:
        with self.lock:
            self.request_count += 1
        throttled = False
        while True:
            with self.lock:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return True
                if not throttled:
                    self.throttled_count += 1
                    throttled = True
                if not wait:
                    return False
                wait_time = (tokens - self.tokens) / self.token_refill_rate
            logger.debug(f"Rate limiter '{self.name}' waiting {wait_time:.2f}s")
            self._sleep(wait_time)

    # --- get_stats ---
    # Returns: Dictionary with rate limiter statistics
    def get_stats(self) -> Dict[str, float]:
        with self.lock:
            self._refill()
            return {
                "name": self.name,
                "tokens": self.tokens,
                "max_tokens": self.max_tokens,
                "request_count": self.request_count,
                "throttled_count": self.throttled_count,
                "throttle_ratio": self.throttled_count / self.request_count if self.request_count else 0
            }

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ DEFAULT LIMITERS                                                           ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# --- default_event_list_limiter ---
# Events.list is the call fanned out to every calendar, so it gets its own bucket.
# Allows bursts of up to 20 list operations, long-term average of 5 per second.
def default_event_list_limiter() -> TokenBucketRateLimiter:
    return TokenBucketRateLimiter("event_list", max_tokens=20.0, token_refill_rate=5.0)

# --- default_calendar_api_limiter ---
# Everything else (calendar list, inserts).
def default_calendar_api_limiter() -> TokenBucketRateLimiter:
    return TokenBucketRateLimiter("calendar_api", max_tokens=10.0, token_refill_rate=2.0)
