"""
Unit tests for similarity calculations
"""

from datetime import datetime, timedelta

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from graphrec.core.similarity import (
    align_vectors, content_similarity, cosine, jaccard, most_similar_users, normalize_similarity,
    pearson, temporal_similarity, user_product_similarity, user_vector, weighted_similarity
)
from graphrec.models.entities import Interaction, InteractionType, Product, User


class TestVectorSimilarity:
    """Test cases for cosine, Jaccard and Pearson"""

    def test_cosine_known_value(self):
        """dot=35, norms sqrt(34) and sqrt(41)"""
        assert cosine({1: 5, 2: 3}, {1: 4, 2: 5}) == pytest.approx(0.938, abs=1e-3)

    def test_cosine_uses_union_of_keys(self):
        assert cosine({1: 1.0}, {2: 1.0}) == 0.0
        assert cosine({1: 1.0, 2: 1.0}, {1: 1.0}) == pytest.approx(1 / 2 ** 0.5)

    def test_cosine_degenerate_vectors(self):
        assert cosine({}, {1: 1.0}) == 0.0
        assert cosine({1: 0.0}, {1: 1.0}) == 0.0

    def test_jaccard_edge_cases(self):
        assert jaccard(set(), set()) == 1.0
        assert jaccard({1}, set()) == 0.0
        assert jaccard(set(), {1}) == 0.0

    def test_jaccard_is_symmetric(self):
        a, b = {1, 2, 3}, {2, 3, 4, 5}
        assert jaccard(a, b) == jaccard(b, a) == pytest.approx(2 / 5)

    def test_pearson(self):
        assert pearson({1: 1, 2: 2, 3: 3}, {1: 2, 2: 4, 3: 6}) == pytest.approx(1.0)
        assert pearson({1: 1, 2: 2, 3: 3}, {1: 3, 2: 2, 3: 1}) == pytest.approx(-1.0)

    def test_pearson_needs_two_shared_keys_and_variance(self):
        assert pearson({1: 1, 2: 2}, {1: 1, 3: 3}) == 0.0
        assert pearson({1: 2, 2: 2}, {1: 1, 2: 5}) == 0.0


class TestContentSimilarity:
    """Test cases for the product attribute blend"""

    def test_identical_products(self):
        product = Product(1, category="Laptops", brand="Dell", price=1000.0, tags={"work"})
        twin = Product(2, category="laptops", brand="DELL", price=1000.0, tags={"WORK"})

        assert content_similarity(product, twin) == pytest.approx(1.0)

    def test_missing_price_and_tags_leave_denominator(self):
        """Only category and brand apply: 0.4 / 0.7"""
        a = Product(1, category="Books", brand="Penguin", price=0.0)
        b = Product(2, category="Books", brand="Vintage", price=10.0, tags={"fiction"})

        assert content_similarity(a, b) == pytest.approx(0.4 / 0.7)

    def test_price_proximity_floors_at_zero(self):
        a = Product(1, category="X", brand="Y", price=10.0)
        b = Product(2, category="Z", brand="W", price=1000.0)

        assert content_similarity(a, b) == 0.0


class TestVectorsAndHelpers:
    """Test cases for vector builders and blend helpers"""

    def setup_method(self):
        now = datetime(2024, 1, 1)
        self.interactions = [
            Interaction(1, 10, InteractionType.VIEW, timestamp=now),
            Interaction(1, 10, InteractionType.VIEW, timestamp=now),
            Interaction(1, 10, InteractionType.PURCHASE, timestamp=now),
            Interaction(1, 11, InteractionType.RATING, value=4.0, timestamp=now),
            Interaction(2, 10, InteractionType.VIEW, timestamp=now + timedelta(hours=168)),
        ]

    def test_user_vector_sums_weights(self):
        assert user_vector(1, self.interactions) == {10: 7.0, 11: 4.0}

    def test_temporal_similarity(self):
        one_user = [self.interactions[0]]
        other_user = [self.interactions[4]]

        assert temporal_similarity(one_user, one_user) == 1.0
        assert temporal_similarity(one_user, other_user) == pytest.approx(0.3679, abs=1e-4)
        assert temporal_similarity([], other_user) == 0.0

    def test_user_product_similarity(self):
        user = User(1, category_preferences={"Books": 1.0})
        product = Product(5, category="Books", price=5000.0, rating=5.0)

        assert user_product_similarity(user, product) == pytest.approx(0.6 + 0.2 + 0.1)

    def test_weighted_and_normalized(self):
        assert weighted_similarity({'a': 1.0, 'b': 0.0}, {'a': 3.0, 'b': 1.0}) == pytest.approx(0.75)
        assert weighted_similarity({}) == 0.0
        assert normalize_similarity(1.5) == 1.0
        assert normalize_similarity(-0.2) == 0.0

    def test_most_similar_users_breaks_ties_by_id(self):
        vectors = {1: {10: 1.0}, 3: {10: 2.0}, 2: {10: 5.0}, 4: {11: 1.0}}

        assert most_similar_users(1, vectors, 2) == [(2, pytest.approx(1.0)), (3, pytest.approx(1.0))]
        assert most_similar_users(99, vectors, 2) == []

    def test_most_similar_users_with_empty_vectors(self):
        """Users without interactions score 0 instead of failing the batch"""
        vectors = {1: {10: 1.0}, 2: {}, 3: {10: 1.0, 11: 1.0}}

        assert most_similar_users(1, vectors, 3) == [
            (3, pytest.approx(1 / 2 ** 0.5)), (2, 0.0)]
        assert most_similar_users(1, {1: {}, 2: {}}, 1) == [(2, 0.0)]


class TestVectorAlignment:
    """Test cases for dense alignment of sparse vectors"""

    def test_rows_share_the_union_of_keys(self):
        matrix = align_vectors([{1: 2.0, 3: 1.0}, {2: 5.0}])

        assert matrix.shape == (2, 3)
        assert matrix.tolist() == [[2.0, 0.0, 1.0], [0.0, 5.0, 0.0]]

    def test_cosine_is_symmetric(self):
        a, b = {1: 3.0, 2: 1.0}, {2: 2.0, 3: 4.0}

        assert cosine(a, b) == pytest.approx(cosine(b, a))
        assert cosine(a, a) == pytest.approx(1.0)

    def test_pearson_ignores_unshared_keys(self):
        assert pearson({1: 1, 2: 2, 3: 3, 9: 100}, {1: 2, 2: 4, 3: 6, 8: -5}) == pytest.approx(1.0)
