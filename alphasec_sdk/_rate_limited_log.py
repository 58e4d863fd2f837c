"""
Thread-safe rate-limited logging utilities.

Reconnect loops can fail many times per minute against a dead endpoint; this
keeps such warnings visible without flooding the log.
"""
import logging
import threading
from typing import Dict, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# One cache per interval so each entry expires after its own interval
_log_caches: Dict[int, TTLCache] = {}
_log_caches_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None,
    key: Optional[str] = None,
) -> bool:
    """
    Log a message at most once per interval, in a thread-safe manner.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical logs in seconds
        logger_instance: Logger to use (defaults to module logger)
        key: Deduplication key; defaults to the level and message

    Returns:
        True if the message was logged, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    cache_key = key or f"{level}:{message}"

    with _log_caches_lock:
        cache = _log_caches.get(interval)
        if cache is None:
            cache = _log_caches[interval] = TTLCache(maxsize=256, ttl=interval)
        if cache_key in cache:
            return False
        cache[cache_key] = True

    log_method(message)
    return True


def reset_rate_limits() -> None:
    """Forget all suppressed messages"""
    with _log_caches_lock:
        _log_caches.clear()
