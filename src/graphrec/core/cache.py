"""
Advisory caches for similarity pairs and user profiles

Entries are never required for correctness: a lost or stale entry only
costs recomputation. Concurrent misses on the same key may both compute;
the last writer's value stands.
"""

import threading
from typing import Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class AdvisoryCache(Generic[K, V]):
    """Sharded, lock-striped mapping with get-or-compute"""

    def __init__(self, name: str, n_shards: int = 16):
        self.name = name
        self._shards: List[Dict[K, V]] = [{} for _ in range(n_shards)]
        self._locks = [threading.Lock() for _ in range(n_shards)]
        # Counted per shard under that shard's lock
        self._hits = [0] * n_shards
        self._misses = [0] * n_shards

    @property
    def hits(self) -> int:
        return sum(self._hits)

    @property
    def misses(self) -> int:
        return sum(self._misses)

    def _index(self, key: K) -> int:
        return hash(key) % len(self._shards)

    def get(self, key: K) -> Optional[V]:
        idx = self._index(key)
        with self._locks[idx]:
            return self._shards[idx].get(key)

    def put(self, key: K, value: V):
        idx = self._index(key)
        with self._locks[idx]:
            self._shards[idx][key] = value

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value, computing it outside any lock on a miss"""
        idx = self._index(key)
        with self._locks[idx]:
            if key in self._shards[idx]:
                self._hits[idx] += 1
                return self._shards[idx][key]
            self._misses[idx] += 1

        value = compute()
        self.put(key, value)
        return value

    def invalidate(self, key: K):
        idx = self._index(key)
        with self._locks[idx]:
            self._shards[idx].pop(key, None)

    def invalidate_where(self, predicate: Callable[[K], bool]) -> int:
        removed = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                stale = [key for key in shard if predicate(key)]
                for key in stale:
                    del shard[key]
                removed += len(stale)
        return removed

    def clear(self):
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                shard.clear()

    def __contains__(self, key: K) -> bool:
        idx = self._index(key)
        with self._locks[idx]:
            return key in self._shards[idx]

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)

    def statistics(self) -> Dict[str, int]:
        return {'entries': len(self), 'hits': self.hits, 'misses': self.misses}


class PairCache(AdvisoryCache[Tuple[int, int], float]):
    """
    Symmetric similarity cache keyed by the unordered id pair

    A value computed for (a, b) is served for (b, a) as well.
    """

    @staticmethod
    def pair_key(a: int, b: int) -> Tuple[int, int]:
        return (a, b) if a <= b else (b, a)

    def get_pair(self, a: int, b: int) -> Optional[float]:
        return self.get(self.pair_key(a, b))

    def get_or_compute_pair(self, a: int, b: int, compute: Callable[[], float]) -> float:
        return self.get_or_compute(self.pair_key(a, b), compute)

    def invalidate_member(self, member: int) -> int:
        """Drop every pair that involves the given id"""
        return self.invalidate_where(lambda key: member in key)
