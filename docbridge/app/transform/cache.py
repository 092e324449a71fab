"""
Result cache for forward transformations.

Entries are keyed by a snapshot fingerprint and carry the invalidation
signal that was live when they were written. Bumping the signal
invalidates every existing entry at once without iterating them.

IMPORTANT:
- Every public method is synchronous and never awaits, so cache
  operations are atomic under cooperative scheduling.
- The fingerprint is a truncated serialization prefix, not a digest.
  Snapshots that differ only beyond the prefix share a key.
- The invalidation signal belongs to this instance. Separate managers
  never observe each other's invalidations.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import anyio
from pydantic import BaseModel, ConfigDict

from docbridge.app.config import BridgeConfig
from docbridge.app.schemas.transformation import TransformationResult
from docbridge.app.stores import PersistedKeyStore
from docbridge.app.utils.timing import now_ms

logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX = "transform_"
FINGERPRINT_LENGTH = 50

ACCESS_WEIGHT = 1000
SHRINK_RATIO = 0.8

PERSISTED_KEY_MARKERS = ("cache", "persist", "hybrid")

_FINGERPRINT_FIELDS = {"containers", "paragraphs", "flattened_content", "is_completed"}


def fingerprint(snapshot: BaseModel) -> str:
    """
    Cache key for a snapshot: prefix + first 50 characters of its JSON
    projection.

    Volatile fields (timestamps, durations, cursor state) are excluded so
    re-extracting unchanged data yields the same key.
    """
    projection = snapshot.model_dump_json(include=_FINGERPRINT_FIELDS)
    return FINGERPRINT_PREFIX + projection[:FINGERPRINT_LENGTH]


@dataclass
class CacheEntry:
    data: TransformationResult
    timestamp: int
    access_count: int
    invalidation_signal: int


class CacheStatistics(BaseModel):
    size: int
    max_size: int
    invalidation_signal: int
    hits: int
    misses: int

    model_config = ConfigDict(frozen=True, extra="forbid")


class CacheManager:
    """
    Bounded, signal-invalidated cache of TransformationResults.
    """

    def __init__(
        self,
        *,
        expiry_ms: int = 300_000,
        max_size: int = 100,
        sweep_interval_s: float = 60.0,
        persisted_keys: Optional[PersistedKeyStore] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self._entries: Dict[str, CacheEntry] = {}
        self._expiry_ms = expiry_ms
        self._max_size = max_size
        self._sweep_interval_s = sweep_interval_s
        self._persisted_keys = persisted_keys
        self._clock = clock

        self._signal = 0
        self._hits = 0
        self._misses = 0
        self._sweep_scope: Optional[anyio.CancelScope] = None

    @classmethod
    def from_config(
        cls,
        config: BridgeConfig,
        persisted_keys: Optional[PersistedKeyStore] = None,
    ) -> "CacheManager":
        return cls(
            expiry_ms=config.cache_expiry_ms,
            max_size=config.cache_max_size,
            sweep_interval_s=config.cache_sweep_interval_s,
            persisted_keys=persisted_keys,
        )

    @property
    def invalidation_signal(self) -> int:
        return self._signal

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[TransformationResult]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._is_stale(entry) or self._is_expired(entry):
            del self._entries[key]
            self._misses += 1
            return None

        entry.access_count += 1
        self._hits += 1
        return entry.data

    def set(self, key: str, value: TransformationResult) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._evict_to(math.floor(self._max_size * SHRINK_RATIO))

        self._entries[key] = CacheEntry(
            data=value,
            timestamp=self._clock(),
            access_count=1,
            invalidation_signal=self._signal,
        )

    def invalidate_all(self) -> None:
        """
        Invalidate every entry and clear related persisted keys.
        """
        self._signal += 1
        self._entries.clear()
        self._clear_persisted_keys()
        logger.info("Result cache invalidated (signal=%d)", self._signal)

    # ------------------------------------------------------------------
    # Sweeping
    # ------------------------------------------------------------------

    def sweep(self) -> int:
        """
        Remove expired, stale and excess entries. Returns the number removed.
        """
        before = len(self._entries)

        for key in [
            key
            for key, entry in self._entries.items()
            if self._is_stale(entry) or self._is_expired(entry)
        ]:
            del self._entries[key]

        if len(self._entries) > self._max_size:
            self._evict_to(self._max_size)

        removed = before - len(self._entries)
        if removed:
            logger.debug("Cache sweep removed %d entries", removed)
        return removed

    async def run_sweeper(self) -> None:
        """
        Sweep periodically until ``stop()`` is called.

        Intended to run inside a task group owned by the caller.
        """
        with anyio.CancelScope() as scope:
            self._sweep_scope = scope
            try:
                while True:
                    await anyio.sleep(self._sweep_interval_s)
                    self.sweep()
            finally:
                self._sweep_scope = None

    def stop(self) -> None:
        if self._sweep_scope is not None:
            self._sweep_scope.cancel()

    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            size=len(self._entries),
            max_size=self._max_size,
            invalidation_signal=self._signal,
            hits=self._hits,
            misses=self._misses,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_stale(self, entry: CacheEntry) -> bool:
        return entry.invalidation_signal != self._signal

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self._expiry_ms

    def _evict_to(self, target_size: int) -> None:
        # Lowest score first: rarely used, then oldest
        ranked = sorted(
            self._entries.items(),
            key=lambda item: item[1].access_count * ACCESS_WEIGHT + item[1].timestamp,
        )
        excess = len(self._entries) - target_size
        for key, _ in ranked[:max(0, excess)]:
            del self._entries[key]

    def _clear_persisted_keys(self) -> None:
        if self._persisted_keys is None:
            return

        try:
            doomed = [
                key
                for key in self._persisted_keys.keys()
                if any(marker in key for marker in PERSISTED_KEY_MARKERS)
            ]
            for key in doomed:
                self._persisted_keys.remove(key)
        except Exception as exc:
            logger.warning("Failed to clear persisted cache keys: %s", exc)
