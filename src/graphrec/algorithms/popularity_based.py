"""
Popularity-based Recommendation Engine
Catalog-wide popularity and per-category trending for cold-start users
"""

from typing import Iterable, List, Mapping, Optional, Set

import structlog

from graphrec.algorithms.base import degrade_to_empty
from graphrec.core.graph import UserItemGraph
from graphrec.core.top_k import TopKSelector
from graphrec.models.entities import Product, User
from graphrec.models.ids import UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm

logger = structlog.get_logger(__name__)

# Popularity scores above this saturate at 1.0
POPULARITY_NORMALIZER = 1000.0

# Trending score blend
TRENDING_VIEW_SATURATION = 1000.0
TRENDING_PURCHASE_SATURATION = 100.0


def normalized_popularity(product: Product) -> float:
    return min(1.0, product.popularity_score / POPULARITY_NORMALIZER)


def trending_score(product: Product) -> float:
    """Blend of saturated view/purchase counts and rating"""
    view_score = min(1.0, product.view_count / TRENDING_VIEW_SATURATION)
    purchase_score = min(1.0, product.purchase_count / TRENDING_PURCHASE_SATURATION)
    rating_score = product.rating / 5.0
    return view_score * 0.4 + purchase_score * 0.4 + rating_score * 0.2


class PopularityScorer:
    """Scores products by graph degree and interaction counters"""

    def __init__(self, graph: UserItemGraph,
                 users: Mapping[int, User],
                 products: Mapping[int, Product]):
        self.graph = graph
        self.users = users
        self.products = products

    def _popular(self, user_id: UserId, count: int, exclude: Set[int]) -> List[Recommendation]:
        recommendations = []
        if count <= 0:
            return recommendations

        # Degree order; products never interacted with follow by id
        for product_id in self.graph.most_popular(self.graph.product_count):
            if product_id in exclude:
                continue
            product = self.products.get(product_id)
            if product is None:
                continue

            score = normalized_popularity(product)
            rec = Recommendation(user_id, product_id, score, RecommendationAlgorithm.POPULARITY.value)
            rec.add_component("popularity", score)
            rec.add_reason("popular")
            recommendations.append(rec)

            if len(recommendations) >= count:
                break

        return recommendations

    @degrade_to_empty("popularity")
    def popular_recommendations(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """
        Most popular products the user has not viewed or purchased

        Args:
            user_id: Target user, unknown users get the unfiltered list
            top_k: Number of recommendations

        Returns:
            Ranked recommendations, score min(1, popularity / 1000)
        """
        user = self.users.get(user_id)
        exclude = user.seen_products if user is not None else set()
        selector = TopKSelector(top_k)
        selector.offer_all(self._popular(user_id, top_k, exclude))
        return selector.top_k()

    @degrade_to_empty("popularity")
    def popular(self, top_k: int) -> List[Recommendation]:
        """Catalog-wide popular products, not tied to a user"""
        selector = TopKSelector(top_k)
        selector.offer_all(self._popular(0, top_k, set()))
        return selector.top_k()

    @degrade_to_empty("trending")
    def trending_in_category(self, category: str, top_k: int,
                             user_id: UserId = 0,
                             exclude: Optional[Iterable[int]] = None) -> List[Recommendation]:
        """Products of one category (case-insensitive) by trending score"""
        excluded = set(exclude or ())
        selector = TopKSelector(top_k)

        for product_id, product in self.products.items():
            if product_id in excluded or product.category.lower() != category.lower():
                continue

            score = trending_score(product)
            if score > 0:
                rec = Recommendation(user_id, product_id, score, RecommendationAlgorithm.TRENDING.value)
                rec.add_component("trending", score)
                rec.add_reason("trending_in_category", subject=product.category)
                selector.offer(rec)

        recommendations = selector.top_k()
        logger.debug("Trending products scored",
                     category=category,
                     n_recommendations=len(recommendations))
        return recommendations
