"""
Hybrid Recommendation Engine
Fuses collaborative, content, popularity and trending signals into one ranking
"""

from collections import defaultdict
from dataclasses import astuple, dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import structlog

from graphrec.algorithms.collaborative_filtering import CollaborativeFiltering
from graphrec.algorithms.content_based_filtering import ContentBasedFiltering
from graphrec.algorithms.popularity_based import PopularityScorer
from graphrec.config import HYBRID_WEIGHTS_CONFIG
from graphrec.core.top_k import TopKSelector
from graphrec.errors import InvalidArgumentError
from graphrec.models.entities import Product, User
from graphrec.models.ids import UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm

logger = structlog.get_logger(__name__)

SIGNALS = ('collaborative', 'content', 'popularity', 'trending')

# Engagement tiers for adaptive weighting
NEW_USER_MAX_INTERACTIONS = 5
ACTIVE_USER_MIN_INTERACTIONS = 50


@dataclass(frozen=True)
class HybridWeights:
    """Immutable fusion weights, one per signal"""
    collaborative: float
    content: float
    popularity: float
    trending: float

    def normalized(self) -> "HybridWeights":
        """
        Scale the weights to sum to 1

        Raises:
            InvalidArgumentError: if any weight is negative or the sum is not positive
        """
        values = astuple(self)
        if any(value < 0 for value in values):
            raise InvalidArgumentError(f"Hybrid weights must be non-negative, got {values}")
        total = sum(values)
        if total <= 0:
            raise InvalidArgumentError("Total hybrid weight must be positive")
        return HybridWeights(*(value / total for value in values))

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(SIGNALS, astuple(self)))

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> "HybridWeights":
        return cls(*(float(weights.get(signal, 0.0)) for signal in SIGNALS))


NEW_USER_WEIGHTS = HybridWeights(collaborative=0.1, content=0.4, popularity=0.4, trending=0.1)
ACTIVE_USER_WEIGHTS = HybridWeights(collaborative=0.6, content=0.2, popularity=0.1, trending=0.1)


class HybridRecommender:
    """
    Weighted fusion over the individual scorers

    The configured weights are only ever replaced as a whole; per-call
    overrides are passed down instead of mutating them.
    """

    def __init__(self, collaborative: CollaborativeFiltering,
                 content: ContentBasedFiltering,
                 popularity: PopularityScorer,
                 users: Mapping[int, User],
                 products: Mapping[int, Product],
                 weights: Optional[HybridWeights] = None):
        self.collaborative = collaborative
        self.content = content
        self.popularity = popularity
        self.users = users
        self.products = products
        self._weights = (weights or HybridWeights.from_mapping(HYBRID_WEIGHTS_CONFIG)).normalized()

    @property
    def weights(self) -> HybridWeights:
        return self._weights

    def set_weights(self, collaborative: float, content: float,
                    popularity: float, trending: float) -> HybridWeights:
        """Validate, normalise and install new fusion weights"""
        self._weights = HybridWeights(collaborative, content, popularity, trending).normalized()
        logger.info("Hybrid weights updated", **self._weights.as_dict())
        return self._weights

    def signal_recommendations(self, user_id: UserId, top_k: int,
                               weights: Mapping[str, float]) -> Dict[str, List[Recommendation]]:
        """Run only the scorers whose weight is positive"""
        runners = {
            'collaborative': self.collaborative.collaborative_recommendations,
            'content': self.content.content_recommendations,
            'popularity': self.popularity.popular_recommendations,
            'trending': self.content.trending_in_preferences,
        }
        return {
            name: runner(user_id, top_k)
            for name, runner in runners.items()
            if weights.get(name, 0.0) > 0
        }

    def hybrid_recommendations(self, user_id: UserId, top_k: int,
                               weights: Optional[HybridWeights] = None) -> List[Recommendation]:
        """
        Weighted mean of signal scores per product

        Only signals that scored a product count toward its denominator;
        signals with zero weight are not queried at all.

        Args:
            user_id: Target user
            top_k: Number of recommendations
            weights: Per-call weights, defaults to the configured ones

        Returns:
            Ranked recommendations tagged hybrid
        """
        if user_id not in self.users:
            return []

        active = (weights or self._weights).as_dict()
        signals = self.signal_recommendations(user_id, top_k, active)

        scores: Dict[int, List[Tuple[str, float, float]]] = defaultdict(list)
        for name, recs in signals.items():
            for rec in recs:
                scores[rec.product_id].append((name, rec.score, active[name]))

        selector = TopKSelector(top_k)
        for product_id, contributions in scores.items():
            total_weight = sum(weight for _, _, weight in contributions)
            fused = sum(score * weight for _, score, weight in contributions) / total_weight

            rec = Recommendation(user_id, product_id, fused, RecommendationAlgorithm.HYBRID.value)
            for name, score, _ in contributions:
                rec.add_component(name, score)
            rec.add_reason("signals", subject=", ".join(name for name, _, _ in contributions))
            selector.offer(rec)

        recommendations = selector.top_k()
        logger.info("Hybrid recommendations generated",
                    user_id=user_id,
                    n_candidates=len(scores),
                    n_recommendations=len(recommendations),
                    signal_sizes={name: len(recs) for name, recs in signals.items()})
        return recommendations

    def adaptive_weights_for(self, user_id: UserId) -> HybridWeights:
        """Tier-specific weights; the configured weights cover the middle tier"""
        user = self.users.get(user_id)
        total_interactions = user.total_interactions if user is not None else 0

        if total_interactions < NEW_USER_MAX_INTERACTIONS:
            return NEW_USER_WEIGHTS
        if total_interactions > ACTIVE_USER_MIN_INTERACTIONS:
            return ACTIVE_USER_WEIGHTS
        return self._weights

    def adaptive_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        if user_id not in self.users:
            return []
        weights = self.adaptive_weights_for(user_id)
        logger.debug("Adaptive weights selected", user_id=user_id, **weights.as_dict())
        return self.hybrid_recommendations(user_id, top_k, weights=weights)

    def diversified_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """
        Hybrid ranking re-selected under per-category and per-brand caps

        Over-fetches 3 * top_k candidates. Caps are max(1, top_k // 3) per
        category and max(1, top_k // 2) per brand; free slots are then
        backfilled with the best remaining candidates.
        """
        if user_id not in self.users or top_k <= 0:
            return []

        candidates = self.hybrid_recommendations(user_id, top_k * 3)
        category_cap = max(1, top_k // 3)
        brand_cap = max(1, top_k // 2)

        category_counts = defaultdict(int)
        brand_counts = defaultdict(int)
        selected: List[Recommendation] = []
        leftovers: List[Recommendation] = []

        for rec in candidates:
            if len(selected) >= top_k:
                leftovers.append(rec)
                continue

            product = self.products.get(rec.product_id)
            category = product.category if product is not None else ""
            brand = product.brand if product is not None else ""

            if category_counts[category] < category_cap and brand_counts[brand] < brand_cap:
                category_counts[category] += 1
                brand_counts[brand] += 1
                rec.add_reason("diverse_selection")
                selected.append(rec)
            else:
                leftovers.append(rec)

        for rec in leftovers:
            if len(selected) >= top_k:
                break
            selected.append(rec)

        selector = TopKSelector(top_k)
        selector.offer_all(selected)
        return selector.top_k()

    def cascade_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Collaborative first, then content, then popularity, without duplicates"""
        if top_k <= 0:
            return []

        results: List[Recommendation] = []
        included = set()

        stages = (
            self.collaborative.collaborative_recommendations,
            self.content.content_recommendations,
            self.popularity.popular_recommendations,
        )
        for stage in stages:
            missing = top_k - len(results)
            if missing <= 0:
                break
            for rec in stage(user_id, missing):
                if rec.product_id in included:
                    continue
                included.add(rec.product_id)
                results.append(rec)

        return [rec.ranked(rank) for rank, rec in enumerate(results[:top_k], start=1)]
