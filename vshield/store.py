"""
VShield Whitelist Store

The store maps a normalized source address to an absolute expiry instant
(milliseconds since epoch). Every write also hands the store a backing TTL,
which the store uses to evict the entry on its own once it elapses. Callers
always pass the same duration they used to compute the expiry instant, so
physical eviction and logical expiry coincide.

The store is injected into every component. Implementations must be:
- Atomic per key (no multi-key transactions are needed)
- Immediately visible to every concurrent caller after a write
- Self-evicting, so memory stays bounded even if nobody re-reads an entry
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from .errors import StoreUnavailableError
from .util import Clock, is_positive_integer, now_ms

logger = logging.getLogger(__name__)


class WhitelistStore(ABC):
    """Abstract interface for the shared whitelist."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        """Store value under key and evict it after ttl_ms."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Snapshot of the keys present at call time, in no particular order."""
        pass


def _check_ttl(ttl_ms: Any) -> None:
    if not is_positive_integer(ttl_ms):
        raise ValueError(f"ttl_ms must be a positive integer, got {ttl_ms!r}")


class InMemoryWhitelistStore(WhitelistStore):
    """
    Process-wide in-memory store.

    Shared by every thread of one process. Entries are evicted when their
    backing TTL elapses: on access, on keys(), and by a sweep that runs every
    `sweep_every` writes so entries nobody reads again do not accumulate.

    WARNING: Not shared across processes and reset on restart.
    Use RedisWhitelistStore when several worker processes serve the gate.
    """

    def __init__(self, clock: Optional[Clock] = None, sweep_every: int = 256):
        self._data: Dict[str, Tuple[Any, int]] = {}  # key -> (value, evict_at_ms)
        self._lock = threading.Lock()
        self._clock = clock or now_ms
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, evict_at = item
            if evict_at <= now:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        _check_ttl(ttl_ms)
        now = self._clock()
        with self._lock:
            self._data[key] = (value, now + ttl_ms)
            self._writes += 1
            if self._writes % self._sweep_every == 0:
                self._evict_locked(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            self._evict_locked(now)
            return list(self._data.keys())

    def cleanup_expired(self) -> int:
        """Evict every entry whose backing TTL has elapsed. Returns count removed."""
        with self._lock:
            return self._evict_locked(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _evict_locked(self, now: int) -> int:
        expired = [k for k, (_, evict_at) in self._data.items() if evict_at <= now]
        for k in expired:
            del self._data[k]
        if expired:
            logger.debug("Evicted %d whitelist entries", len(expired))
        return len(expired)


class RedisWhitelistStore(WhitelistStore):
    """
    Redis-backed store for multi-process deployments.

    Features:
    - Shared by every worker process and host pointing at the same Redis
    - Atomic per-key SET/GET/DEL
    - Eviction via PX (millisecond TTL) on every write

    Any Redis failure is raised as StoreUnavailableError.

    Requires: redis-py
    """

    def __init__(self, redis_client, key_prefix: str = "vshield:ip:"):
        self.redis = redis_client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "vshield:ip:") -> "RedisWhitelistStore":
        import redis

        return cls(redis.Redis.from_url(url), key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @contextmanager
    def _backend(self, op: str):
        try:
            yield
        except StoreUnavailableError:
            raise
        except Exception as e:
            logger.error("Redis %s failed: %s", op, e)
            raise StoreUnavailableError(f"redis {op} failed: {e}") from e

    def get(self, key: str) -> Optional[Any]:
        with self._backend("get"):
            raw = self.redis.get(self._key(key))
        if isinstance(raw, bytes):
            return raw.decode("utf-8", "replace")
        return raw

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        _check_ttl(ttl_ms)
        with self._backend("set"):
            self.redis.set(self._key(key), str(value), px=ttl_ms)

    def delete(self, key: str) -> None:
        with self._backend("delete"):
            self.redis.delete(self._key(key))

    def keys(self) -> List[str]:
        keys = []
        with self._backend("scan"):
            for raw in self.redis.scan_iter(match=f"{self.key_prefix}*"):
                name = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
                keys.append(name[len(self.key_prefix):])
        return keys


def put_entry(store: WhitelistStore, key: str, ttl_ms: int, now: int) -> int:
    """
    Write an entry expiring ttl_ms after now. Returns the expiry instant.

    The same ttl_ms is the backing TTL, so the store evicts the entry exactly
    when it becomes logically invalid.
    """
    expires_at = now + ttl_ms
    store.set(key, expires_at, ttl_ms)
    return expires_at
