"""
Replay protection for signed Agent API requests.

Every accepted request consumes a one-time key. The store's own
insert-if-absent primitive is the source of truth for "already seen";
there is no check-then-insert in application code.

Strict vs. lenient mode
-----------------------
When the store cannot be reached (anything other than a uniqueness
conflict) the guard reports ``UNAVAILABLE``. In strict mode the
authenticator refuses the request. In lenient (fail-open) mode the request
proceeds without replay protection, which means a captured request can be
replayed for as long as the store is down and the timestamp is inside the
window. Strict is the default; lenient must be opted into.
"""
import logging
import os
import threading
from enum import Enum
from typing import Optional, Protocol

from cachetools import TTLCache

from .._rate_limited_log import rate_limited_log
from ..exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

REPLAY_STORE_MEMORY = "memory"
REPLAY_STORE_REDIS = "redis"

DEFAULT_MEMORY_MAXSIZE = 1_000_000


class ReplayOutcome(str, Enum):
    FRESH = "fresh"
    DUPLICATE = "duplicate"
    UNAVAILABLE = "unavailable"


class ReplayStore(Protocol):
    """Backing store for consumed request keys."""

    def insert_if_absent(self, key: str) -> bool:
        """
        Atomically insert ``key``.

        Returns:
            True if the key was inserted, False if it already existed

        Raises:
            StoreUnavailableError: If the store cannot answer
        """
        ...

    def purge_expired(self) -> int:
        """Drop keys older than the retention period; returns how many were dropped."""
        ...


class InMemoryReplayStore:
    """
    Process-local replay store.

    Keys expire after ``ttl_seconds``. Suitable for a single API process;
    use :class:`RedisReplayStore` when several processes share traffic.
    """

    def __init__(self, ttl_seconds: int, maxsize: int = DEFAULT_MEMORY_MAXSIZE):
        self.ttl_seconds = ttl_seconds
        self._keys = TTLCache(maxsize=maxsize, ttl=ttl_seconds)
        self._lock = threading.RLock()

    def insert_if_absent(self, key: str) -> bool:
        with self._lock:
            self._keys.expire()
            if key in self._keys:
                return False
            # A full cache would evict live keys and reopen them for replay
            if len(self._keys) >= self._keys.maxsize:
                raise StoreUnavailableError("replay store is full")
            self._keys[key] = True
            return True

    def purge_expired(self) -> int:
        with self._lock:
            return len(self._keys.expire())

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class RedisReplayStore:
    """
    Replay store shared between processes through Redis.

    Uses ``SET key 1 NX EX ttl`` so uniqueness and expiry are both enforced
    by Redis itself.
    """

    def __init__(self, redis_url: str, ttl_seconds: int, prefix: str = "agentos:replay:", client=None):
        try:
            import redis
        except ImportError:
            raise ImportError(
                "Redis replay protection requires the 'redis' package. "
                "Install it with 'pip install agentos-sdk[redis]'."
            )
        self._redis_error = redis.exceptions.RedisError
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self.client = client if client is not None else redis.from_url(redis_url)

    def insert_if_absent(self, key: str) -> bool:
        try:
            inserted = self.client.set(f"{self.prefix}{key}", 1, nx=True, ex=self.ttl_seconds)
        except self._redis_error as e:
            raise StoreUnavailableError(f"replay store unavailable: {e}")
        return bool(inserted)

    def purge_expired(self) -> int:
        # Redis expires keys on its own
        return 0


def create_replay_store(
    ttl_seconds: int,
    strategy: Optional[str] = None,
    redis_url: Optional[str] = None,
) -> ReplayStore:
    """
    Build the replay store selected by configuration.

    Args:
        ttl_seconds: How long consumed keys are retained
        strategy: "memory" or "redis" (defaults to AGENTOS_REPLAY_STORE)
        redis_url: Redis URL (defaults to AGENTOS_REDIS_URL)

    Raises:
        ValueError: If the strategy is unknown or redis_url is missing
    """
    if strategy is None:
        strategy = os.environ.get("AGENTOS_REPLAY_STORE", REPLAY_STORE_MEMORY).lower()

    if strategy == REPLAY_STORE_REDIS:
        if redis_url is None:
            redis_url = os.environ.get("AGENTOS_REDIS_URL")
        if not redis_url:
            raise ValueError(
                "Redis URL is required for the redis replay store. "
                "Set AGENTOS_REDIS_URL environment variable or provide redis_url parameter."
            )
        return RedisReplayStore(redis_url, ttl_seconds)
    elif strategy == REPLAY_STORE_MEMORY:
        return InMemoryReplayStore(ttl_seconds)
    else:
        raise ValueError(
            f"Invalid replay store: {strategy}. "
            f"Valid options are: {REPLAY_STORE_MEMORY}, {REPLAY_STORE_REDIS}"
        )


class ReplayGuard:
    """Consumes one-time request keys and reports whether they were fresh."""

    def __init__(self, store: Optional[ReplayStore], strict: bool = True):
        """
        Args:
            store: Backing store; None means replay protection is unavailable
            strict: Refuse requests when the store is unavailable (fail-closed)
        """
        self.store = store
        self.strict = strict
        if not strict:
            logger.warning(
                "Replay protection is fail-open: requests are admitted without a "
                "replay check while the replay store is unavailable"
            )

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def try_consume(self, key: str) -> ReplayOutcome:
        """
        Attempt to consume ``key`` exactly once.

        Returns:
            FRESH on first use, DUPLICATE if already consumed, UNAVAILABLE on
            store errors unrelated to uniqueness
        """
        if self.store is None:
            return ReplayOutcome.UNAVAILABLE
        try:
            inserted = self.store.insert_if_absent(key)
        except StoreUnavailableError as e:
            rate_limited_log(f"Replay check unavailable: {e}", level="error", logger_instance=logger)
            return ReplayOutcome.UNAVAILABLE
        return ReplayOutcome.FRESH if inserted else ReplayOutcome.DUPLICATE

    def purge_expired(self) -> int:
        """Housekeeping hook; safe to call periodically."""
        if self.store is None:
            return 0
        purged = self.store.purge_expired()
        if purged:
            logger.debug(f"Purged {purged} expired replay keys")
        return purged
