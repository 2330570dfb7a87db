"""
Collaborative Filtering Algorithms Implementation
Implements both user-based and item-based collaborative filtering on the interaction graph
"""

from collections import defaultdict
from typing import Dict, List, Mapping, Optional

import structlog

from graphrec.algorithms.base import degrade_to_empty
from graphrec.config import ENGINE_CONFIG
from graphrec.core.cache import PairCache
from graphrec.core.graph import UserItemGraph
from graphrec.core.interaction_log import InteractionLog
from graphrec.core.similarity import cosine, item_vector, user_vector
from graphrec.core.top_k import TopKSelector
from graphrec.models.entities import Product, User
from graphrec.models.ids import ProductId, UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm

logger = structlog.get_logger(__name__)


class CollaborativeFiltering:
    """
    Neighbourhood collaborative filtering

    User-user and item-item cosine similarities are computed from the
    interaction log on demand and memoised in symmetric pair caches.
    """

    def __init__(self, graph: UserItemGraph,
                 users: Mapping[int, User],
                 products: Mapping[int, Product],
                 interaction_log: InteractionLog,
                 bfs_depth: Optional[int] = None,
                 similar_user_count: Optional[int] = None):
        self.graph = graph
        self.users = users
        self.products = products
        self.interaction_log = interaction_log
        self.bfs_depth = bfs_depth if bfs_depth is not None else ENGINE_CONFIG['bfs_depth']
        self.similar_user_count = (similar_user_count if similar_user_count is not None
                                   else ENGINE_CONFIG['similar_user_count'])

        self.user_similarity_cache = PairCache("user_similarity")
        self.item_similarity_cache = PairCache("item_similarity")

    # Similarities

    def user_similarity(self, user_a: UserId, user_b: UserId) -> float:
        def compute():
            return cosine(user_vector(user_a, self.interaction_log.for_user(user_a)),
                          user_vector(user_b, self.interaction_log.for_user(user_b)))
        return self.user_similarity_cache.get_or_compute_pair(user_a, user_b, compute)

    def item_similarity(self, product_a: ProductId, product_b: ProductId) -> float:
        def compute():
            return cosine(item_vector(product_a, self.interaction_log.for_product(product_a)),
                          item_vector(product_b, self.interaction_log.for_product(product_b)))
        return self.item_similarity_cache.get_or_compute_pair(product_a, product_b, compute)

    def find_similar_users(self, user_id: UserId, count: int) -> List[int]:
        """
        Most similar peers by cosine, positive similarities only

        Candidates come from the bounded BFS; when that yields fewer than
        `count` users the whole connected neighbourhood is considered.
        """
        candidates = self.graph.find_similar_users(user_id, self.bfs_depth)
        if len(candidates) < count:
            seen = set(candidates)
            candidates.extend(sorted(self.graph.explore_neighborhood(user_id) - seen))

        similarities = []
        for candidate in candidates:
            if candidate == user_id:
                continue
            similarity = self.user_similarity(user_id, candidate)
            if similarity > 0:
                similarities.append((candidate, similarity))

        similarities.sort(key=lambda pair: (-pair[1], pair[0]))
        return [candidate for candidate, _ in similarities[:count]]

    # Recommendations

    @degrade_to_empty("user_collaborative")
    def user_based_recommendations(self, user_id: UserId, top_k: int,
                                   similar_user_count: Optional[int] = None) -> List[Recommendation]:
        """
        Recommend what similar users interacted with

        Args:
            user_id: Target user
            top_k: Number of recommendations
            similar_user_count: Peers to aggregate over

        Returns:
            Ranked recommendations tagged user_collaborative
        """
        if user_id not in self.users:
            return []

        count = similar_user_count if similar_user_count is not None else self.similar_user_count
        seen = self.graph.user_products(user_id)
        candidate_scores = defaultdict(float)

        for peer in self.find_similar_users(user_id, count):
            similarity = self.user_similarity(user_id, peer)
            for product_id in self.graph.user_products(peer):
                if product_id in seen:
                    continue
                candidate_scores[product_id] += similarity * self.graph.weight(peer, product_id)

        selector = TopKSelector(top_k)
        for product_id, score in candidate_scores.items():
            rec = Recommendation(user_id, product_id, score,
                                 RecommendationAlgorithm.USER_COLLABORATIVE.value)
            rec.add_component("user_similarity", score)
            rec.add_reason("similar_users")
            selector.offer(rec)

        recommendations = selector.top_k()
        logger.info("User-based recommendations generated",
                    user_id=user_id,
                    n_candidates=len(candidate_scores),
                    n_recommendations=len(recommendations))
        return recommendations

    @degrade_to_empty("item_collaborative")
    def item_based_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Weighted average of the user's own weights over similar history items"""
        if user_id not in self.users:
            return []

        history = sorted(self.graph.user_products(user_id))
        if not history:
            return []

        selector = TopKSelector(top_k)
        for candidate in sorted(self.graph.products()):
            if candidate in self.graph.user_products(user_id):
                continue

            total_score = 0.0
            total_similarity = 0.0
            for product_id in history:
                similarity = self.item_similarity(product_id, candidate)
                if similarity > 0:
                    total_score += similarity * self.graph.weight(user_id, product_id)
                    total_similarity += similarity

            if total_similarity > 0:
                score = total_score / total_similarity
                rec = Recommendation(user_id, candidate, score,
                                     RecommendationAlgorithm.ITEM_COLLABORATIVE.value)
                rec.add_component("item_similarity", score)
                rec.add_reason("similar_items")
                selector.offer(rec)

        recommendations = selector.top_k()
        logger.info("Item-based recommendations generated",
                    user_id=user_id,
                    history_size=len(history),
                    n_recommendations=len(recommendations))
        return recommendations

    @degrade_to_empty("collaborative_combined")
    def collaborative_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """
        User-based and item-based results merged

        Each side contributes up to half of top_k (at least one). A product
        found by both gets the mean of the two scores.
        """
        half = max(1, top_k // 2)
        user_based = self.user_based_recommendations(user_id, half)
        item_based = self.item_based_recommendations(user_id, half)

        merged: Dict[int, Recommendation] = {rec.product_id: rec for rec in user_based}
        for rec in item_based:
            existing = merged.get(rec.product_id)
            if existing is None:
                merged[rec.product_id] = rec
                continue

            combined = Recommendation(user_id, rec.product_id,
                                      (existing.score + rec.score) / 2,
                                      RecommendationAlgorithm.COLLABORATIVE_COMBINED.value)
            combined.add_component("user_similarity", existing.score)
            combined.add_component("item_similarity", rec.score)
            combined.add_reason("similar_users")
            combined.add_reason("similar_items")
            merged[rec.product_id] = combined

        selector = TopKSelector(top_k)
        selector.offer_all(merged.values())
        return selector.top_k()

    # Cache management

    def invalidate_user(self, user_id: UserId):
        self.user_similarity_cache.invalidate_member(user_id)

    def invalidate_product(self, product_id: ProductId):
        self.item_similarity_cache.invalidate_member(product_id)

    def clear_caches(self):
        self.user_similarity_cache.clear()
        self.item_similarity_cache.clear()
        logger.info("Collaborative filtering caches cleared")

    def cache_statistics(self) -> Dict[str, Dict[str, int]]:
        return {
            'user_similarities': self.user_similarity_cache.statistics(),
            'item_similarities': self.item_similarity_cache.statistics(),
        }
