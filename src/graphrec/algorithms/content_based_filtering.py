"""
Content-Based Filtering Algorithm
Recommends products whose attributes match a profile built from the user's history
"""

from collections import defaultdict
from typing import Dict, List, Mapping, Optional

import structlog

from graphrec.algorithms.base import degrade_to_empty
from graphrec.config import ENGINE_CONFIG
from graphrec.core.cache import AdvisoryCache
from graphrec.core.interaction_log import InteractionLog
from graphrec.core.similarity import content_similarity
from graphrec.core.top_k import TopKSelector
from graphrec.models.entities import Product, User
from graphrec.models.ids import UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm

logger = structlog.get_logger(__name__)

# Share of the profile mass per attribute dimension
PROFILE_DIMENSION_WEIGHTS = {
    'category': 0.4,
    'brand': 0.25,
    'price_range': 0.2,
    'tag': 0.15,
}

HIGH_RATING_THRESHOLD = 4.0
HIGH_RATING_BONUS = 0.1
POPULAR_VIEW_THRESHOLD = 100
POPULAR_BONUS = 0.05

# Profile weight above which a match is worth explaining
STRONG_PREFERENCE = 0.1


def price_bucket(price: float) -> str:
    """Fixed price range label used in profiles"""
    if price < 500:
        return "budget"
    elif price < 1500:
        return "low"
    elif price < 3000:
        return "mid"
    elif price < 5000:
        return "high"
    return "premium"


def product_feature_keys(product: Product) -> List[str]:
    """Profile keys a product can match, e.g. 'category:laptops'"""
    keys = []
    if product.category:
        keys.append(f"category:{product.category.lower()}")
    if product.brand:
        keys.append(f"brand:{product.brand.lower()}")
    keys.append(f"price_range:{price_bucket(product.price)}")
    keys.extend(f"tag:{tag}" for tag in sorted(product.tags))
    return keys


class ContentBasedFiltering:
    """
    Content-based recommendations from weighted attribute profiles

    Profiles are cached per user until invalidated by new interactions.
    """

    def __init__(self, users: Mapping[int, User],
                 products: Mapping[int, Product],
                 interaction_log: InteractionLog,
                 similar_item_threshold: Optional[float] = None):
        self.users = users
        self.products = products
        self.interaction_log = interaction_log
        self.similar_item_threshold = (similar_item_threshold if similar_item_threshold is not None
                                       else ENGINE_CONFIG['similar_item_threshold'])
        self.profile_cache = AdvisoryCache("user_profiles")

    # Profiles

    def build_user_profile(self, user_id: UserId) -> Dict[str, float]:
        """
        Build preference profile from the user's interaction slice

        Each dimension's weights are normalised by the total interaction
        weight and scaled by the dimension share.
        """
        dimension_weights: Dict[str, Dict[str, float]] = {
            dimension: defaultdict(float) for dimension in PROFILE_DIMENSION_WEIGHTS
        }
        total_weight = 0.0

        for interaction in self.interaction_log.for_user(user_id):
            product = self.products.get(interaction.product_id)
            if product is None:
                continue

            weight = interaction.weight
            total_weight += weight

            if product.category:
                dimension_weights['category'][product.category.lower()] += weight
            if product.brand:
                dimension_weights['brand'][product.brand.lower()] += weight
            dimension_weights['price_range'][price_bucket(product.price)] += weight
            for tag in product.tags:
                dimension_weights['tag'][tag] += weight

        profile = {}
        if total_weight > 0:
            for dimension, values in dimension_weights.items():
                share = PROFILE_DIMENSION_WEIGHTS[dimension]
                for value, weight in values.items():
                    profile[f"{dimension}:{value}"] = (weight / total_weight) * share

        return profile

    def get_user_profile(self, user_id: UserId) -> Dict[str, float]:
        return self.profile_cache.get_or_compute(user_id, lambda: self.build_user_profile(user_id))

    def profile_for_analysis(self, user_id: UserId) -> Dict[str, float]:
        """Copy of the cached profile, safe to mutate"""
        return dict(self.get_user_profile(user_id))

    # Scoring

    @staticmethod
    def calculate_content_score(profile: Mapping[str, float], product: Product) -> float:
        score = sum(profile.get(key, 0.0) for key in product_feature_keys(product))

        if product.rating > HIGH_RATING_THRESHOLD:
            score += HIGH_RATING_BONUS
        if product.view_count > POPULAR_VIEW_THRESHOLD:
            score += POPULAR_BONUS

        return max(0.0, min(1.0, score))

    @staticmethod
    def _add_content_reasons(rec: Recommendation, profile: Mapping[str, float], product: Product):
        if product.category and profile.get(f"category:{product.category.lower()}", 0.0) > STRONG_PREFERENCE:
            rec.add_reason("category_match", subject=product.category)
        if product.brand and profile.get(f"brand:{product.brand.lower()}", 0.0) > STRONG_PREFERENCE:
            rec.add_reason("brand_match", subject=product.brand)
        if product.rating > HIGH_RATING_THRESHOLD:
            rec.add_reason("high_rating", value=product.rating)
        if not rec.reasons:
            rec.add_reason("profile_match")

    def _seen_products(self, user_id: UserId):
        user = self.users.get(user_id)
        return user.seen_products if user is not None else set()

    @degrade_to_empty("content_based")
    def content_based_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """
        Score every unseen product against the user's profile

        Args:
            user_id: Target user
            top_k: Number of recommendations

        Returns:
            Ranked recommendations with positive scores only
        """
        if user_id not in self.users:
            return []

        profile = self.get_user_profile(user_id)
        if not profile:
            return []

        seen = self._seen_products(user_id)
        selector = TopKSelector(top_k)
        for product_id, product in self.products.items():
            if product_id in seen:
                continue

            score = self.calculate_content_score(profile, product)
            if score > 0:
                rec = Recommendation(user_id, product_id, score,
                                     RecommendationAlgorithm.CONTENT_BASED.value)
                rec.add_component("content_similarity", score)
                self._add_content_reasons(rec, profile, product)
                selector.offer(rec)

        recommendations = selector.top_k()
        logger.info("Content-based recommendations generated",
                    user_id=user_id,
                    profile_size=len(profile),
                    n_recommendations=len(recommendations))
        return recommendations

    @degrade_to_empty("trending_content")
    def trending_in_preferences(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Popular products in the user's strongly preferred categories"""
        if user_id not in self.users:
            return []

        profile = self.get_user_profile(user_id)
        preferred = {
            key[len("category:"):]: weight
            for key, weight in profile.items()
            if key.startswith("category:") and weight > STRONG_PREFERENCE
        }
        if not preferred:
            return []

        seen = self._seen_products(user_id)
        selector = TopKSelector(top_k)
        for product_id, product in self.products.items():
            if product_id in seen or not product.category:
                continue

            category_preference = preferred.get(product.category.lower())
            if category_preference is None:
                continue

            trending_score = product.popularity_score
            score = trending_score * category_preference
            if score > 0:
                rec = Recommendation(user_id, product_id, score,
                                     RecommendationAlgorithm.TRENDING_CONTENT.value)
                rec.add_component("trending", trending_score)
                rec.add_component("category_preference", category_preference)
                rec.add_reason("trending_in_category", subject=product.category)
                selector.offer(rec)

        return selector.top_k()

    @degrade_to_empty("similar_content")
    def similar_products(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Unseen products close in content to anything the user has seen"""
        if user_id not in self.users:
            return []

        seen = self._seen_products(user_id)
        history = [self.products[pid] for pid in sorted(seen) if pid in self.products]
        if not history:
            return []

        candidate_scores: Dict[int, float] = {}
        for seen_product in history:
            for candidate_id, candidate in self.products.items():
                if candidate_id in seen:
                    continue
                similarity = content_similarity(seen_product, candidate)
                if similarity >= self.similar_item_threshold:
                    candidate_scores[candidate_id] = max(similarity,
                                                         candidate_scores.get(candidate_id, 0.0))

        selector = TopKSelector(top_k)
        for product_id, score in candidate_scores.items():
            rec = Recommendation(user_id, product_id, score,
                                 RecommendationAlgorithm.SIMILAR_CONTENT.value)
            rec.add_component("content_similarity", score)
            rec.add_reason("similar_content", subject=self.products[product_id].category or None)
            selector.offer(rec)

        return selector.top_k()

    @degrade_to_empty("content_combined")
    def content_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Profile matches and similar products merged, each asked for half of top_k"""
        half = max(1, top_k // 2)
        selector = TopKSelector(top_k)
        selector.offer_all(self.content_based_recommendations(user_id, half))
        selector.offer_all(self.similar_products(user_id, half))
        return selector.top_k()

    # Cache management

    def invalidate_user(self, user_id: UserId):
        self.profile_cache.invalidate(user_id)

    def clear_cache(self):
        self.profile_cache.clear()
        logger.info("Content profile cache cleared")

    def cache_statistics(self) -> Dict[str, int]:
        return self.profile_cache.statistics()
