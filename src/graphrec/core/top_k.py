"""
Bounded Top-K Selector
Min-heap of at most k recommendations with per-product deduplication
"""

import heapq
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from graphrec.models.recommendation import Recommendation, rank_recommendations


class TopKSelector:
    """
    Capacity-bounded, duplicate-free candidate holder

    Admission and eviction are O(log k). Once full, a candidate is admitted
    only if its score is strictly greater than the current minimum. Among
    equal scores the larger product id sits lower in the heap, so it is
    evicted first, which matches the read order of top_k().
    """

    def __init__(self, capacity: int):
        self.capacity = max(0, capacity)
        self._heap: List[Tuple[float, int, Recommendation]] = []
        self._seen: Set[int] = set()

    @staticmethod
    def _heap_entry(recommendation: Recommendation) -> Tuple[float, int, Recommendation]:
        # Product ids are unique inside the heap, so the tuple never compares recommendations
        return (recommendation.score, -recommendation.product_id, recommendation)

    def offer(self, recommendation: Optional[Recommendation]) -> bool:
        """
        Offer a candidate

        Returns:
            True if the candidate was admitted
        """
        if recommendation is None or self.capacity == 0:
            return False
        if recommendation.product_id in self._seen:
            return False

        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, self._heap_entry(recommendation))
            self._seen.add(recommendation.product_id)
            return True

        if recommendation.score > self._heap[0][0]:
            _, _, evicted = heapq.heapreplace(self._heap, self._heap_entry(recommendation))
            self._seen.discard(evicted.product_id)
            self._seen.add(recommendation.product_id)
            return True

        return False

    def offer_all(self, recommendations: Iterable[Recommendation]) -> int:
        """Offer every candidate; returns the number admitted"""
        return sum(1 for rec in recommendations if self.offer(rec))

    def merge(self, other: "TopKSelector") -> int:
        return self.offer_all([entry for _, _, entry in other._heap])

    def top_k(self) -> List[Recommendation]:
        """Admitted entries by descending score with ranks 1..size"""
        return rank_recommendations([entry for _, _, entry in self._heap])

    def peek_min(self) -> Optional[Recommendation]:
        return self._heap[0][2] if self._heap else None

    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def is_full(self) -> bool:
        return len(self._heap) >= self.capacity

    def clear(self):
        self._heap.clear()
        self._seen.clear()

    def contains(self, product_id: int) -> bool:
        return product_id in self._seen

    def product_ids(self) -> Set[int]:
        return set(self._seen)

    # Score statistics

    def min_score_threshold(self) -> float:
        return self._heap[0][0] if self._heap else 0.0

    def max_score(self) -> float:
        return max((score for score, _, _ in self._heap), default=0.0)

    def average_score(self) -> float:
        if not self._heap:
            return 0.0
        return sum(score for score, _, _ in self._heap) / len(self._heap)

    def top_k_with_min_score(self, min_score: float) -> List[Recommendation]:
        return [rec for rec in self.top_k() if rec.score >= min_score]

    def grouped_by_algorithm(self) -> Dict[str, List[Recommendation]]:
        grouped = defaultdict(list)
        for rec in self.top_k():
            grouped[rec.algorithm].append(rec)
        return dict(grouped)

    def diversity_score(self, product_categories: Mapping[int, str]) -> float:
        """Distinct categories per admitted entry"""
        if not self._heap or not product_categories:
            return 0.0
        categories = {
            product_categories[entry.product_id]
            for _, _, entry in self._heap
            if entry.product_id in product_categories
        }
        return len(categories) / len(self._heap)

    def copy(self) -> "TopKSelector":
        duplicate = TopKSelector(self.capacity)
        duplicate.merge(self)
        return duplicate

    def __repr__(self) -> str:
        return (f"TopKSelector(size={len(self._heap)}, capacity={self.capacity}, "
                f"avg_score={self.average_score():.3f})")
