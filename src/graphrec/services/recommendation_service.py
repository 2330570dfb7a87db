"""
Recommendation Service
High-level API over the interaction graph and the scoring strategies
"""

from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Optional, Union

import structlog

from graphrec.algorithms.base import degrade_to_empty
from graphrec.algorithms.collaborative_filtering import CollaborativeFiltering
from graphrec.algorithms.content_based_filtering import ContentBasedFiltering
from graphrec.algorithms.hybrid import HybridRecommender, HybridWeights
from graphrec.algorithms.matrix_factorization import MatrixFactorization
from graphrec.algorithms.popularity_based import PopularityScorer
from graphrec.config import ENGINE_CONFIG
from graphrec.core.graph import UserItemGraph
from graphrec.core.interaction_log import InteractionLog
from graphrec.core.locks import ReadWriteLock
from graphrec.core.top_k import TopKSelector
from graphrec.errors import InvalidArgumentError, NotFoundError
from graphrec.models.entities import Interaction, InteractionType, Product, User
from graphrec.models.ids import ProductId, UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm
from graphrec.models.schemas import InteractionInput, ProductInput, UserInput
from graphrec.services.explanations import ExplanationRenderer

logger = structlog.get_logger(__name__)

# Engagement tiers for routing
CONTENT_TIER_MIN_INTERACTIONS = 1
HYBRID_TIER_MIN_INTERACTIONS = 5

# Peers considered by the graph-similarity strategy
SIMILAR_USERS_PEER_LIMIT = 10


class RecommendationService:
    """
    Owns the catalog stores, the interaction log and the graph

    Ingestion takes the write side of the engine lock; every scoring entry
    point takes the read side, so scorers run concurrently and never see a
    half-applied interaction.
    """

    def __init__(self, engine_config: Optional[Dict[str, Any]] = None,
                 hybrid_weights: Optional[HybridWeights] = None,
                 matrix_factorization: Optional[MatrixFactorization] = None):
        self.config = dict(ENGINE_CONFIG)
        self.config.update(engine_config or {})
        self.logger = logger.bind(component="RecommendationService")

        self.graph = UserItemGraph()
        self.users: Dict[UserId, User] = {}
        self.products: Dict[ProductId, Product] = {}
        self.interaction_log = InteractionLog()
        self.lock = ReadWriteLock()

        self.collaborative_filter = CollaborativeFiltering(
            self.graph, self.users, self.products, self.interaction_log,
            bfs_depth=self.config['bfs_depth'],
            similar_user_count=self.config['similar_user_count'],
        )
        self.content_filter = ContentBasedFiltering(
            self.users, self.products, self.interaction_log,
            similar_item_threshold=self.config['similar_item_threshold'],
        )
        self.popularity_scorer = PopularityScorer(self.graph, self.users, self.products)
        self.matrix_factorization = matrix_factorization or MatrixFactorization(
            self.graph, self.interaction_log)
        self.hybrid_recommender = HybridRecommender(
            self.collaborative_filter, self.content_filter, self.popularity_scorer,
            self.users, self.products, weights=hybrid_weights,
        )
        self.renderer = ExplanationRenderer()

        self.logger.info("Recommendation service initialized",
                         default_k=self.config['default_k'],
                         bfs_depth=self.config['bfs_depth'],
                         weights=self.hybrid_recommender.weights.as_dict())

    def _k(self, k: Optional[int]) -> int:
        return self.config['default_k'] if k is None else k

    def _explain(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        return self.renderer.explain_all(recommendations)

    # Ingestion

    def add_user(self, user: Union[User, UserInput]) -> User:
        if isinstance(user, UserInput):
            user = user.to_entity()
        if user.user_id <= 0:
            raise InvalidArgumentError(f"User id must be positive, got {user.user_id}")

        with self.lock.write_locked():
            self.users[user.user_id] = user
            self.graph.add_user(user.user_id)
        return user

    def add_product(self, product: Union[Product, ProductInput]) -> Product:
        if isinstance(product, ProductInput):
            product = product.to_entity()
        if product.product_id <= 0:
            raise InvalidArgumentError(f"Product id must be positive, got {product.product_id}")

        with self.lock.write_locked():
            self.products[product.product_id] = product
            self.graph.add_product(product.product_id)
        return product

    def ingest_interaction(self, interaction: Union[Interaction, InteractionInput]) -> Interaction:
        """
        Apply one interaction to the log, the stores and the graph

        Raises:
            InvalidArgumentError: for non-positive user or product ids
        """
        if isinstance(interaction, InteractionInput):
            interaction = interaction.to_entity()
        if interaction.user_id <= 0 or interaction.product_id <= 0:
            raise InvalidArgumentError(
                f"Interaction ids must be positive, got user={interaction.user_id} "
                f"product={interaction.product_id}")

        user_id = interaction.user_id
        product_id = interaction.product_id

        with self.lock.write_locked():
            self.interaction_log.append(interaction)

            user = self.users.get(user_id)
            if user is not None:
                if interaction.type == InteractionType.VIEW:
                    user.add_viewed_product(product_id)
                elif interaction.type == InteractionType.PURCHASE:
                    user.add_purchased_product(product_id)
                elif interaction.type == InteractionType.WISHLIST:
                    user.add_to_wishlist(product_id)

            product = self.products.get(product_id)
            if product is not None:
                if interaction.type == InteractionType.VIEW:
                    product.increment_view_count()
                elif interaction.type == InteractionType.PURCHASE:
                    product.increment_purchase_count()
                elif interaction.type == InteractionType.WISHLIST:
                    product.increment_wishlist_count()

            # Repeated pairs overwrite the edge weight; log-built vectors still sum
            self.graph.add_interaction(user_id, product_id, interaction.weight)

            self.content_filter.invalidate_user(user_id)
            self.collaborative_filter.invalidate_user(user_id)
            self.collaborative_filter.invalidate_product(product_id)

        return interaction

    def add_users(self, users: Iterable[Union[User, UserInput]]):
        for user in users:
            self.add_user(user)

    def add_products(self, products: Iterable[Union[Product, ProductInput]]):
        for product in products:
            self.add_product(product)

    def ingest_interactions(self, interactions: Iterable[Union[Interaction, InteractionInput]]) -> int:
        count = 0
        for interaction in interactions:
            self.ingest_interaction(interaction)
            count += 1
        self.logger.info("Interactions ingested", n_interactions=count,
                         total_interactions=len(self.interaction_log))
        return count

    # Lookups

    def get_user(self, user_id: UserId) -> Optional[User]:
        return self.users.get(user_id)

    def get_product(self, product_id: ProductId) -> Optional[Product]:
        return self.products.get(product_id)

    def get_user_or_raise(self, user_id: UserId) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"Unknown user {user_id}")
        return user

    # Tiered entry point

    def recommend(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        """
        Route by engagement tier

        No interactions: popularity. One to four: content-based.
        Five or more: hybrid. Unknown users get an empty list.
        """
        k = self._k(k)
        with self.lock.read_locked():
            user = self.users.get(user_id)
            if user is None:
                return []

            total_interactions = user.total_interactions
            if total_interactions < CONTENT_TIER_MIN_INTERACTIONS:
                tier, recommendations = "popularity", self.popular_for_user(user_id, k)
            elif total_interactions < HYBRID_TIER_MIN_INTERACTIONS:
                tier, recommendations = "content", self.content_based(user_id, k)
            else:
                tier, recommendations = "hybrid", self.hybrid(user_id, k)

        self.logger.info("Recommendations served",
                         user_id=user_id,
                         tier=tier,
                         total_interactions=total_interactions,
                         n_recommendations=len(recommendations))
        return recommendations

    def recommend_batch(self, user_ids: Iterable[int], k: Optional[int] = None,
                        timeout: Optional[float] = None) -> Dict[int, List[Recommendation]]:
        """
        Score several users concurrently

        Requests still running at the deadline are abandoned and reported
        as empty lists.
        """
        user_ids = list(user_ids)
        timeout = self.config['batch_timeout_seconds'] if timeout is None else timeout
        results: Dict[int, List[Recommendation]] = {}
        if not user_ids:
            return results

        executor = ThreadPoolExecutor(max_workers=self.config['batch_workers'])
        try:
            futures = {executor.submit(self.recommend, user_id, k): user_id for user_id in user_ids}
            done, not_done = wait(futures, timeout=timeout)

            for future, user_id in futures.items():
                if future not in done:
                    results[user_id] = []
                    continue
                try:
                    results[user_id] = future.result()
                except Exception as e:
                    self.logger.error("Batch recommendation failed", user_id=user_id, error=str(e))
                    results[user_id] = []

            if not_done:
                self.logger.warning("Batch recommendations abandoned at deadline",
                                    n_abandoned=len(not_done),
                                    timeout_seconds=timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    # Collaborative strategies

    def collaborative(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.collaborative_filter.collaborative_recommendations(user_id, self._k(k)))

    def user_based(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.collaborative_filter.user_based_recommendations(user_id, self._k(k)))

    def item_based(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.collaborative_filter.item_based_recommendations(user_id, self._k(k)))

    def matrix_factorization_recommendations(self, user_id: UserId,
                                             k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.matrix_factorization.recommend(user_id, self._k(k)))

    def train_matrix_factorization(self) -> bool:
        """Blocking retrain over the current log"""
        with self.lock.read_locked():
            return self.matrix_factorization.train()

    @degrade_to_empty("similar_users")
    def similar_users(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        """Products of graph-neighbour users weighted by Jaccard similarity"""
        k = self._k(k)
        with self.lock.read_locked():
            if user_id not in self.users:
                return []

            peers = self.graph.find_similar_users(user_id, self.config['bfs_depth'])
            if not peers:
                return self.popular(k)

            seen = self.graph.user_products(user_id)
            scores = defaultdict(float)
            for peer in peers[:SIMILAR_USERS_PEER_LIMIT]:
                similarity = self.graph.graph_similarity(user_id, peer)
                if similarity <= 0:
                    continue
                for product_id in self.graph.user_products(peer):
                    if product_id not in seen:
                        scores[product_id] += similarity * self.graph.weight(peer, product_id)

            selector = TopKSelector(k)
            for product_id, score in scores.items():
                rec = Recommendation(user_id, product_id, score,
                                     RecommendationAlgorithm.SIMILAR_USERS.value)
                rec.add_component("user_similarity", score)
                rec.add_reason("liked_by_similar_users")
                selector.offer(rec)

            return self._explain(selector.top_k())

    # Content strategies

    def content_based(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.content_filter.content_based_recommendations(user_id, self._k(k)))

    def similar_items(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.content_filter.similar_products(user_id, self._k(k)))

    def trending_in_preferences(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.content_filter.trending_in_preferences(user_id, self._k(k)))

    # Popularity strategies

    def trending_in_category(self, category: str, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.popularity_scorer.trending_in_category(category, self._k(k)))

    def popular(self, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.popularity_scorer.popular(self._k(k)))

    def popular_for_user(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.popularity_scorer.popular_recommendations(user_id, self._k(k)))

    # Hybrid strategies

    def hybrid(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        """Weighted fusion; falls back to content-based on failure"""
        k = self._k(k)
        with self.lock.read_locked():
            try:
                return self._explain(self.hybrid_recommender.hybrid_recommendations(user_id, k))
            except Exception as e:
                self.logger.warning("Hybrid recommendations failed, using content-based",
                                    user_id=user_id, error=str(e), exc_info=True)
                return self.content_based(user_id, k)

    @degrade_to_empty("adaptive")
    def adaptive(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.hybrid_recommender.adaptive_recommendations(user_id, self._k(k)))

    def diversified(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        """Category/brand-capped hybrid; falls back to the tiered route on failure"""
        k = self._k(k)
        with self.lock.read_locked():
            try:
                return self._explain(self.hybrid_recommender.diversified_recommendations(user_id, k))
            except Exception as e:
                self.logger.warning("Diversified recommendations failed, using tiered route",
                                    user_id=user_id, error=str(e), exc_info=True)
                return self.recommend(user_id, k)

    @degrade_to_empty("cascade")
    def cascade(self, user_id: UserId, k: Optional[int] = None) -> List[Recommendation]:
        with self.lock.read_locked():
            return self._explain(self.hybrid_recommender.cascade_recommendations(user_id, self._k(k)))

    def update_algorithm_weights(self, collaborative: float, content: float,
                                 popularity: float, trending: float) -> HybridWeights:
        """
        Raises:
            InvalidArgumentError: if any weight is negative or all are zero
        """
        return self.hybrid_recommender.set_weights(collaborative, content, popularity, trending)

    # User maintenance

    def refresh_user_preferences(self, user_id: UserId) -> Dict[str, float]:
        """
        Recompute category preferences and average rating from the log

        A category's preference is the mean interaction weight over the
        user's interactions with products of that category.
        """
        with self.lock.write_locked():
            user = self.users.get(user_id)
            if user is None:
                return {}

            category_weights = defaultdict(list)
            ratings = []
            for interaction in self.interaction_log.for_user(user_id):
                product = self.products.get(interaction.product_id)
                if product is not None and product.category:
                    category_weights[product.category].append(interaction.weight)
                if interaction.type == InteractionType.RATING:
                    ratings.append(interaction.value)

            user.category_preferences = {
                category: sum(weights) / len(weights)
                for category, weights in category_weights.items()
            }
            if ratings:
                user.average_rating = sum(ratings) / len(ratings)

            return dict(user.category_preferences)

    def user_activity_summary(self, user_id: UserId) -> Dict[str, Any]:
        with self.lock.read_locked():
            user = self.users.get(user_id)
            if user is None:
                return {}

            interactions = self.interaction_log.for_user(user_id)
            categories = Counter(
                self.products[interaction.product_id].category
                for interaction in interactions
                if interaction.product_id in self.products
            )
            return {
                'user_id': user_id,
                'total_interactions': user.total_interactions,
                'viewed_products': len(user.viewed_products),
                'purchased_products': len(user.purchased_products),
                'wishlist_products': len(user.wishlist_products),
                'logged_interactions': len(interactions),
                'interaction_types': dict(Counter(interaction.type.value for interaction in interactions)),
                'top_categories': [category for category, _ in categories.most_common(3)],
                'last_interaction': max((i.timestamp for i in interactions), default=None),
                'average_rating': user.average_rating,
            }

    # Introspection

    def statistics(self) -> Dict[str, Any]:
        with self.lock.read_locked():
            active_users = sum(1 for user in self.users.values() if user.total_interactions > 0)
            return {
                'total_users': len(self.users),
                'total_products': len(self.products),
                'total_interactions': len(self.interaction_log),
                'graph_edges': self.graph.edge_count,
                'graph_density': self.graph.density(),
                'active_users': active_users,
                'top_popular_products': self.graph.most_popular(10),
                'hybrid_weights': self.hybrid_recommender.weights.as_dict(),
                'matrix_factorization_trained': self.matrix_factorization.is_trained,
            }

    def cache_statistics(self) -> Dict[str, Any]:
        return {
            'collaborative': self.collaborative_filter.cache_statistics(),
            'content': self.content_filter.cache_statistics(),
        }

    def clear_caches(self):
        self.collaborative_filter.clear_caches()
        self.content_filter.clear_cache()
