"""
Unit tests for collaborative filtering algorithms
Tests neighbour aggregation, item similarity and the degraded path
"""

import pytest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from graphrec.models.entities import Interaction, InteractionType
from graphrec.models.recommendation import RecommendationAlgorithm


class TestUserBasedCollaborativeFiltering:
    """Test cases for user-based recommendations"""

    def test_recommends_peer_products_only(self, catalog_service):
        """User 3 saw products 1 and 2; peers 1 and 2 bring 3, 4, 5 and 7"""
        cf = catalog_service.collaborative_filter
        recs = cf.user_based_recommendations(3, 10)

        product_ids = [rec.product_id for rec in recs]
        assert recs
        assert set(product_ids) <= {3, 4, 5, 7}
        assert all(rec.algorithm == RecommendationAlgorithm.USER_COLLABORATIVE.value for rec in recs)
        assert [rec.rank for rec in recs] == list(range(1, len(recs) + 1))

    def test_scores_are_sorted(self, catalog_service):
        recs = catalog_service.collaborative_filter.user_based_recommendations(3, 10)
        scores = [rec.score for rec in recs]

        assert scores == sorted(scores, reverse=True)

    def test_similar_users_positive_only(self, catalog_service):
        peers = catalog_service.collaborative_filter.find_similar_users(3, 20)

        assert 3 not in peers
        assert set(peers) <= {1, 2, 5}
        assert 1 in peers

    def test_unknown_user(self, catalog_service):
        assert catalog_service.collaborative_filter.user_based_recommendations(999, 5) == []

    def test_failure_degrades_to_empty(self, catalog_service):
        """Unexpected errors inside the strategy yield an empty list"""
        cf = catalog_service.collaborative_filter
        with patch.object(cf, 'find_similar_users', side_effect=RuntimeError("boom")):
            assert cf.user_based_recommendations(3, 5) == []


class TestItemBasedCollaborativeFiltering:
    """Test cases for item-based recommendations"""

    def test_single_history_item_scores_its_weight(self, catalog_service):
        """With one history item every score is that item's weight"""
        recs = catalog_service.collaborative_filter.item_based_recommendations(5, 10)

        assert recs
        assert all(rec.score == pytest.approx(1.0) for rec in recs)
        assert 2 not in [rec.product_id for rec in recs]
        assert [rec.product_id for rec in recs] == sorted(rec.product_id for rec in recs)

    def test_user_without_history(self, catalog_service):
        assert catalog_service.collaborative_filter.item_based_recommendations(6, 10) == []


class TestCombinedCollaborativeFiltering:
    """Test cases for the merged collaborative result"""

    def test_no_duplicates(self, catalog_service):
        recs = catalog_service.collaborative_filter.collaborative_recommendations(3, 6)
        product_ids = [rec.product_id for rec in recs]

        assert len(product_ids) == len(set(product_ids))
        assert len(recs) <= 6
        assert {rec.algorithm for rec in recs} <= {
            RecommendationAlgorithm.USER_COLLABORATIVE.value,
            RecommendationAlgorithm.ITEM_COLLABORATIVE.value,
            RecommendationAlgorithm.COLLABORATIVE_COMBINED.value,
        }

    def test_overlap_gets_mean_score(self, catalog_service):
        cf = catalog_service.collaborative_filter
        user_based = {rec.product_id: rec.score for rec in cf.user_based_recommendations(3, 1)}
        item_based = {rec.product_id: rec.score for rec in cf.item_based_recommendations(3, 1)}
        combined = {rec.product_id: rec for rec in cf.collaborative_recommendations(3, 2)}

        for product_id in set(user_based) & set(item_based):
            rec = combined[product_id]
            assert rec.algorithm == RecommendationAlgorithm.COLLABORATIVE_COMBINED.value
            assert rec.score == pytest.approx((user_based[product_id] + item_based[product_id]) / 2)


class TestSimilarityCaches:
    """Test cases for pair cache invalidation"""

    def test_similarity_is_cached_symmetrically(self, catalog_service):
        cf = catalog_service.collaborative_filter
        similarity = cf.user_similarity(1, 3)

        assert cf.user_similarity_cache.get_pair(3, 1) == similarity

    def test_ingestion_invalidates_touched_pairs(self, catalog_service):
        cf = catalog_service.collaborative_filter
        cf.user_similarity(1, 3)
        cf.item_similarity(1, 2)

        catalog_service.ingest_interaction(Interaction(3, 6, InteractionType.VIEW))

        assert cf.user_similarity_cache.get_pair(1, 3) is None
        assert cf.item_similarity_cache.get_pair(1, 2) == pytest.approx(cf.item_similarity(1, 2))

    def test_clear_caches(self, catalog_service):
        cf = catalog_service.collaborative_filter
        cf.user_based_recommendations(3, 5)
        cf.clear_caches()

        stats = cf.cache_statistics()
        assert stats['user_similarities']['entries'] == 0
        assert stats['item_similarities']['entries'] == 0
