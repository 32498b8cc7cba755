"""
In-process memo cache for computed query results.

Entries are keyed by (namespace, identity, params) and tagged with a
fingerprint of the source recording. A lookup with a different fingerprint
for the same identity evicts every stale entry for that identity, so a
changed recording is never answered from old results.

Fingerprints:
- "sha256": content hash (detects any edit)
- "size": file size only (cheap, but same-size edits go unnoticed)

Concurrent callers asking for the same key wait on a per-key lock, so each
value is computed at most once.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

FINGERPRINT_MODES = ("sha256", "size")

CacheKey = tuple[str, Hashable, Hashable]


def compute_file_hash(file_path: Path, chunk_size: int = 65536) -> str:
    """
    Compute SHA256 hash of a file.

    Args:
        file_path: Path to file
        chunk_size: Read chunk size in bytes

    Returns:
        Hex digest of file hash
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()


def file_fingerprint(file_path: Path, mode: str = "sha256") -> str:
    """
    Fingerprint a recording for cache invalidation.

    Raises:
        ValueError: If ``mode`` is not "sha256" or "size"
        FileNotFoundError: If the file does not exist
    """
    path = Path(file_path)
    if mode == "sha256":
        return f"sha256:{compute_file_hash(path)}"
    if mode == "size":
        return f"size:{path.stat().st_size}"
    raise ValueError(f"Unknown fingerprint mode: {mode!r} (expected one of {FINGERPRINT_MODES})")


@dataclass
class CacheStats:
    """Cache statistics."""

    total_entries: int
    max_entries: int
    hit_count: int = 0
    miss_count: int = 0
    invalidation_count: int = 0
    eviction_count: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hit_count + self.miss_count
        return (self.hit_count / total * 100) if total > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "total_entries": self.total_entries,
            "max_entries": self.max_entries,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "invalidation_count": self.invalidation_count,
            "eviction_count": self.eviction_count,
            "hit_rate_pct": round(self.hit_rate, 1),
        }


class MemoCache:
    """
    Thread-safe LRU memo of computed results.

    Usage:
        cache = MemoCache(max_entries=32)
        stats = cache.get_or_compute("match.dem", fp, lambda: expensive(), namespace="stats")
    """

    def __init__(self, max_entries: int = 32):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, tuple[str, Any]] = OrderedDict()
        self._key_locks: dict[CacheKey, threading.Lock] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        self._evictions = 0

    def _lookup(self, key: CacheKey, fingerprint: str) -> tuple[bool, Any]:
        """Caller holds self._lock."""
        entry = self._entries.get(key)
        if entry is not None and entry[0] == fingerprint:
            self._entries.move_to_end(key)
            self._hits += 1
            return True, entry[1]
        return False, None

    def _drop_idle_lock(self, key: CacheKey) -> None:
        """Caller holds self._lock. A lock someone is computing under stays."""
        lock = self._key_locks.get(key)
        if lock is not None and not lock.locked():
            del self._key_locks[key]

    def _evict_stale(self, identity: Hashable, fingerprint: str) -> None:
        """Caller holds self._lock."""
        stale = [k for k, (fp, _) in self._entries.items() if k[1] == identity and fp != fingerprint]
        for key in stale:
            del self._entries[key]
            self._drop_idle_lock(key)
        if stale:
            self._invalidations += len(stale)
            logger.info(f"Invalidated {len(stale)} cached entries for {identity}")

    def get_or_compute(
        self,
        identity: Hashable,
        fingerprint: str,
        compute: Callable[[], T],
        namespace: str = "default",
        params: Hashable = (),
    ) -> T:
        """
        Return the cached value for the key, computing it on a miss.

        Exceptions from ``compute`` propagate and nothing is cached.
        """
        key: CacheKey = (namespace, identity, params)

        with self._lock:
            found, value = self._lookup(key, fingerprint)
            if found:
                logger.debug(f"Cache hit: {namespace} {identity} {params}")
                return value
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                # Another caller may have finished while we waited
                found, value = self._lookup(key, fingerprint)
                if found:
                    return value
                self._evict_stale(identity, fingerprint)
                self._misses += 1

            logger.info(f"Cache miss: {namespace} {identity} {params}")
            try:
                value = compute()
            except Exception:
                with self._lock:
                    if key not in self._entries and self._key_locks.get(key) is key_lock:
                        del self._key_locks[key]
                raise

            with self._lock:
                self._entries[key] = (fingerprint, value)
                self._entries.move_to_end(key)
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    self._drop_idle_lock(evicted)
                    self._evictions += 1
            return value

    def get(self, identity: Hashable, fingerprint: str, namespace: str = "default", params: Hashable = ()) -> Any:
        """Cached value or None; does not count as a hit or miss."""
        with self._lock:
            entry = self._entries.get((namespace, identity, params))
            if entry is not None and entry[0] == fingerprint:
                return entry[1]
            return None

    def invalidate(self, identity: Hashable) -> int:
        """Drop every entry for ``identity``; returns how many were removed."""
        with self._lock:
            keys = [k for k in self._entries if k[1] == identity]
            for key in keys:
                del self._entries[key]
                self._drop_idle_lock(key)
            self._invalidations += len(keys)
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                total_entries=len(self._entries),
                max_entries=self.max_entries,
                hit_count=self._hits,
                miss_count=self._misses,
                invalidation_count=self._invalidations,
                eviction_count=self._evictions,
            )
