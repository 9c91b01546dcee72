"""
Thread-safe rate-limited logging utilities.

Used for operational warnings that can fire on every request (for example
a replay store outage tolerated in fail-open mode) so they stay visible
without flooding the log.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# Each distinct message is logged at most once per minute
_error_log_cache = TTLCache(maxsize=100, ttl=60)
_error_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message with rate limiting, in a thread-safe manner.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    key = f"{level}:{message}"

    with _error_log_cache_lock:
        if key in _error_log_cache:
            return False
        log_method(message)
        _error_log_cache[key] = True  # Value doesn't matter, TTL handles expiry
        return True
