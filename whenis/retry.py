# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                         GOOGLE API RETRY MODULE                            ║
# ║    Executes blocking Google API requests with rate limiting and            ║
# ║    exponential backoff on transient failures.                              ║
# ╚════════════════════════════════════════════════════════════════════════════╝

"""
retry.py: Retry wrapper for googleapiclient requests.
"""
import random
import time

import httplib2
from googleapiclient.errors import HttpError

from utils.environ import API_MAX_RETRIES
from utils.logging import logger

# --- is_retryable_status ---
# 429 (rate limit) and 5xx are worth another attempt; other 4xx are final.
def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500

# --- retry_api_call ---
# Executes a blocking API call, waiting on the rate limiter before each attempt.
# Handles Google API HttpErrors (429 rate limits and 5xx server errors) and
# transport-level errors (socket timeouts, SSL record errors, httplib2 errors)
# with exponential backoff plus jitter. Non-retryable errors propagate at once.
# Args:
#     func: The zero-argument callable to execute (usually request.execute).
#     rate_limiter: Optional TokenBucketRateLimiter to consume from.
#     max_retries: Maximum number of attempts.
#     sleep: Blocking sleep, replaceable in tests.
# Returns: The result of the API call.
# Raises: The last exception once every attempt has failed.
def retry_api_call(func, rate_limiter=None, max_retries=API_MAX_RETRIES, sleep=time.sleep):
    max_retries = max(1, max_retries)
    last_exception = None
    for attempt in range(max_retries):
        if rate_limiter is not None:
            rate_limiter.consume(tokens=1, wait=True)
        try:
            return func()
        except HttpError as e:
            status_code = e.resp.status
            if not is_retryable_status(status_code):
                raise
            if status_code == 429:
                backoff = min((5 ** attempt) + random.uniform(1, 3), 30.0)
                logger.warning(f"Rate limit hit ({status_code}), attempt {attempt+1}/{max_retries}, backing off for {backoff:.2f}s: {e}")
            else:
                backoff = min((2 ** attempt) + random.uniform(0, 1), 30.0)
                logger.warning(f"Retryable Google API error ({status_code}), attempt {attempt+1}/{max_retries}, backing off for {backoff:.2f}s: {e}")
            last_exception = e
        except (OSError, httplib2.HttpLib2Error) as e:
            # socket timeouts and "[SSL] record layer failure" both surface as OSError
            backoff = min((2 ** attempt) + random.uniform(0, 1), 30.0)
            logger.warning(f"Network error in API call, attempt {attempt+1}/{max_retries}, backing off for {backoff:.2f}s: {e}")
            last_exception = e
        if attempt < max_retries - 1:
            sleep(backoff)

    logger.error(f"All {max_retries} attempts failed for API call: {last_exception}")
    raise last_exception
