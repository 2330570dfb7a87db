"""
Unit tests for the hybrid combiner
Tests weight handling, fusion, adaptive tiers, diversification and cascade
"""

from collections import Counter

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from graphrec.algorithms.hybrid import ACTIVE_USER_WEIGHTS, NEW_USER_WEIGHTS, HybridWeights
from graphrec.errors import InvalidArgumentError
from graphrec.models.recommendation import RecommendationAlgorithm


class TestHybridWeights:
    """Test cases for weight validation and normalisation"""

    def test_normalization(self):
        weights = HybridWeights(2, 1, 1, 0).normalized()

        assert weights.as_dict() == pytest.approx(
            {'collaborative': 0.5, 'content': 0.25, 'popularity': 0.25, 'trending': 0.0})

    def test_all_zero_rejected(self):
        with pytest.raises(InvalidArgumentError):
            HybridWeights(0, 0, 0, 0).normalized()

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            HybridWeights(1, -1, 1, 1).normalized()

    def test_set_weights_replaces_atomically(self, catalog_service):
        hybrid = catalog_service.hybrid_recommender
        before = hybrid.weights

        with pytest.raises(InvalidArgumentError):
            catalog_service.update_algorithm_weights(0, 0, 0, 0)
        assert hybrid.weights is before

        catalog_service.update_algorithm_weights(2, 1, 1, 0)
        assert hybrid.weights.collaborative == pytest.approx(0.5)


class TestHybridFusion:
    """Test cases for weighted fusion"""

    def test_results_exclude_seen_products(self, catalog_service):
        recs = catalog_service.hybrid_recommender.hybrid_recommendations(1, 5)

        assert recs
        assert len(recs) <= 5
        assert not {rec.product_id for rec in recs} & {1, 2, 3, 4}
        assert all(rec.algorithm == RecommendationAlgorithm.HYBRID.value for rec in recs)

    def test_single_signal_reproduces_that_signal(self, catalog_service):
        """Zero-weight signals do not dilute the fused score"""
        hybrid = catalog_service.hybrid_recommender
        popularity_only = HybridWeights(0, 0, 1, 0)

        fused = hybrid.hybrid_recommendations(6, 4, weights=popularity_only)
        popular = catalog_service.popularity_scorer.popular_recommendations(6, 4)

        assert [(r.product_id, pytest.approx(r.score)) for r in popular] == \
            [(r.product_id, r.score) for r in fused]
        assert all(set(r.components) == {'popularity'} for r in fused)

    def test_unknown_user(self, catalog_service):
        assert catalog_service.hybrid_recommender.hybrid_recommendations(999, 5) == []


class TestAdaptiveRecommendations:
    """Test cases for tier-specific weights"""

    def test_tier_selection(self, catalog_service):
        hybrid = catalog_service.hybrid_recommender

        assert hybrid.adaptive_weights_for(3) == NEW_USER_WEIGHTS
        assert hybrid.adaptive_weights_for(1) == hybrid.weights

        catalog_service.users[2].viewed_products.update(range(100, 151))
        assert hybrid.adaptive_weights_for(2) == ACTIVE_USER_WEIGHTS

    def test_adaptive_call_leaves_configured_weights(self, catalog_service):
        hybrid = catalog_service.hybrid_recommender
        before = hybrid.weights

        hybrid.adaptive_recommendations(3, 5)

        assert hybrid.weights == before


class TestDiversifiedAndCascade:
    """Test cases for diversification caps and cascade fallback"""

    def test_diversified_respects_caps_for_selected_entries(self, catalog_service):
        k = 3
        recs = catalog_service.hybrid_recommender.diversified_recommendations(1, k)
        products = catalog_service.products

        capped = [rec for rec in recs if any(r.code == "diverse_selection" for r in rec.reasons)]
        category_counts = Counter(products[rec.product_id].category for rec in capped)

        assert len(recs) <= k
        assert len({rec.product_id for rec in recs}) == len(recs)
        assert all(count <= max(1, k // 3) for count in category_counts.values())

    def test_cascade_is_duplicate_free(self, catalog_service):
        recs = catalog_service.hybrid_recommender.cascade_recommendations(3, 6)
        product_ids = [rec.product_id for rec in recs]

        assert len(product_ids) == len(set(product_ids))
        assert len(recs) <= 6
        assert [rec.rank for rec in recs] == list(range(1, len(recs) + 1))

    def test_cascade_falls_through_to_popularity(self, catalog_service):
        """A user without history only reaches the popularity stage"""
        recs = catalog_service.hybrid_recommender.cascade_recommendations(6, 3)

        assert len(recs) == 3
        assert all(rec.algorithm == RecommendationAlgorithm.POPULARITY.value for rec in recs)
