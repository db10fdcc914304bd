# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                         SHARED UTILITIES PACKAGE                           ║
# ║    Environment configuration, logging setup and API rate limiting.         ║
# ╚════════════════════════════════════════════════════════════════════════════╝

from .environ import get_bool_env, get_float_env, get_int_env, get_str_env
from .logging import logger, setup_logging
from .rate_limiter import TokenBucketRateLimiter

__all__ = [
    'get_bool_env',
    'get_float_env',
    'get_int_env',
    'get_str_env',
    'logger',
    'setup_logging',
    'TokenBucketRateLimiter',
]
