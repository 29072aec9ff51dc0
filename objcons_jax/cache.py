"""Bounded memoising store for evaluations at a point.

Each entry is tagged with an index drawn from a counter owned by the cache.
The counter only ever increases, so indices order entries by insertion time.
When the number of entries exceeds ``max_size`` the cache is compacted: every
entry older than the ``min_size`` most recent indices is dropped.

Compaction is first-in first-out. Looking up an existing entry does not
refresh it; an evicted point that is queried again is recomputed and stored
as a new entry with a new index.
"""

from collections.abc import Callable
from typing import Any, Generic, NamedTuple

import numpy as np

from objcons_jax.errors import ConstructionError
from objcons_jax.logger import objcons_logger
from objcons_jax.types import Payload


class CacheEntry(NamedTuple):
    """A cached payload and its insertion index."""

    index: int
    payload: Any


def cache_key(x) -> bytes:
    """Return the cache key of the point ``x``.

    The key is the raw bytes of ``x`` as a contiguous float64 array, so two
    points share a key only if they are bitwise identical. In particular
    ``0.0`` and ``-0.0`` are distinct keys, and a NaN matches only a NaN with
    the same bit pattern. Bytes are immutable, so later changes to ``x`` by
    the caller never affect a stored key.
    """
    return np.ascontiguousarray(x, dtype=np.float64).tobytes()


class BoundedEvaluationCache(Generic[Payload]):
    """Memoising store with insertion-order compaction.

    Attributes:
        min_size: Number of most recent indices kept after compaction.
        max_size: Compaction is triggered when the cache holds more entries.
        name: Label used in log messages.
        hits: Number of lookups served from the cache.
        misses: Number of lookups that ran ``compute_fn`` successfully.
        compactions: Number of compactions performed.

    Example:
        >>> cache = BoundedEvaluationCache(min_size=2, max_size=4)
        >>> cache.ensure(cache_key([1.0]), lambda: "payload")
        'payload'
    """

    def __init__(self, min_size: int = 200, max_size: int = 500, name: str = "cache"):
        if not 0 <= min_size <= max_size:
            raise ConstructionError(
                "Cache sizes should be nonnegative and ordered, got "
                f"min_size={min_size}, max_size={max_size}."
            )
        self.min_size = min_size
        self.max_size = max_size
        self.name = name
        self._entries: dict[bytes, CacheEntry] = {}
        self._next_index = 0
        self.hits = 0
        self.misses = 0
        self.compactions = 0

    @property
    def next_index(self) -> int:
        """Index that the next inserted entry will receive."""
        return self._next_index

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: bytes) -> bool:
        return key in self._entries

    def indices(self) -> list[int]:
        """Indices of the live entries, in insertion order."""
        return [entry.index for entry in self._entries.values()]

    def ensure(self, key: bytes, compute_fn: Callable[[], Payload]) -> Payload:
        """Return the payload stored under ``key``, computing it on a miss.

        ``compute_fn`` is called at most once per key while the key is live.
        If it raises, the exception propagates, nothing is stored and the
        index counter does not advance.

        Args:
            key: Key of the point, see :func:`cache_key`.
            compute_fn: Zero-argument callable producing the payload.

        Returns:
            The cached (or freshly computed) payload.
        """
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            return entry.payload

        payload = compute_fn()
        self.misses += 1
        self._entries[key] = CacheEntry(index=self._next_index, payload=payload)
        self._next_index += 1
        if len(self._entries) > self.max_size:
            self._compact()
        return payload

    def _compact(self) -> None:
        """Drop every entry whose index precedes the ``min_size`` most recent."""
        keep_index = self._next_index - self.min_size
        n_before = len(self._entries)
        self._entries = {
            key: entry
            for key, entry in self._entries.items()
            if entry.index >= keep_index
        }
        self.compactions += 1
        objcons_logger.debug(
            "Compacted %s: %d -> %d entries (keep_index=%d)",
            self.name,
            n_before,
            len(self._entries),
            keep_index,
        )

    def clear(self) -> None:
        """Remove all entries. The index counter is not reset."""
        self._entries.clear()
