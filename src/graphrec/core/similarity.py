"""
Similarity Calculations
Cosine, Jaccard and Pearson over sparse vectors plus content-feature blends
"""

import math
from collections import defaultdict
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np
from scipy.stats import pearsonr
from sklearn.metrics.pairwise import cosine_similarity

from graphrec.models.entities import Interaction, Product, User

# Content similarity blend (weight per attribute)
CATEGORY_WEIGHT = 0.4
BRAND_WEIGHT = 0.3
PRICE_WEIGHT = 0.2
TAG_WEIGHT = 0.1

# Decay for temporal similarity, one week in hours
TEMPORAL_DECAY_HOURS = 168.0

SparseVector = Mapping[Hashable, float]


def align_vectors(vectors: Sequence[SparseVector]) -> np.ndarray:
    """Dense matrix with one row per vector over the union of their keys"""
    keys = sorted({key for vector in vectors for key in vector}, key=repr)
    position = {key: idx for idx, key in enumerate(keys)}

    matrix = np.zeros((len(vectors), len(keys)))
    for row, vector in enumerate(vectors):
        for key, value in vector.items():
            matrix[row, position[key]] = value
    return matrix


def cosine(vector_a: SparseVector, vector_b: SparseVector) -> float:
    """
    Cosine similarity over the union of keys, missing keys count as 0

    Returns 0 if either vector is empty or has zero norm.
    """
    if not vector_a or not vector_b:
        return 0.0

    matrix = align_vectors([vector_a, vector_b])
    if not matrix[0].any() or not matrix[1].any():
        return 0.0

    return float(cosine_similarity(matrix[0:1], matrix[1:2])[0, 0])


def jaccard(set_a: Set, set_b: Set) -> float:
    """|A ∩ B| / |A ∪ B|; 1.0 for two empty sets, 0.0 if exactly one is empty"""
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def pearson(vector_a: SparseVector, vector_b: SparseVector) -> float:
    """Pearson correlation over shared keys only"""
    common = sorted(set(vector_a) & set(vector_b), key=repr)
    if len(common) < 2:
        return 0.0

    values_a = np.array([vector_a[key] for key in common], dtype=float)
    values_b = np.array([vector_b[key] for key in common], dtype=float)
    # pearsonr is undefined for a constant input
    if np.ptp(values_a) == 0 or np.ptp(values_b) == 0:
        return 0.0

    correlation, _ = pearsonr(values_a, values_b)
    return float(correlation)

def content_similarity(product_a: Product, product_b: Product) -> float:
    """
    Weighted attribute blend between two products

    Category and brand are exact (case-insensitive) matches. The price term
    needs a positive price on both sides and the tag term needs tags on both
    sides; when missing, their weight leaves the denominator too.
    """
    similarity = 0.0
    total_weight = CATEGORY_WEIGHT + BRAND_WEIGHT

    if product_a.category.lower() == product_b.category.lower():
        similarity += CATEGORY_WEIGHT
    if product_a.brand.lower() == product_b.brand.lower():
        similarity += BRAND_WEIGHT

    if product_a.price > 0 and product_b.price > 0:
        avg_price = (product_a.price + product_b.price) / 2
        price_similarity = max(0.0, 1 - abs(product_a.price - product_b.price) / avg_price)
        similarity += PRICE_WEIGHT * price_similarity
        total_weight += PRICE_WEIGHT

    if product_a.tags and product_b.tags:
        similarity += TAG_WEIGHT * jaccard(product_a.tags, product_b.tags)
        total_weight += TAG_WEIGHT

    return similarity / total_weight


def user_product_similarity(user: User, product: Product) -> float:
    """Match between a user's stored category preferences and a product"""
    similarity = 0.0

    # Category preference (0.6)
    similarity += 0.6 * user.category_preferences.get(product.category, 0.0)

    # Rating compatibility (0.2)
    if product.rating > 0:
        similarity += 0.2 * min(1.0, product.rating / 5.0)

    # Price heuristic (0.2), assumes prices top out around 10k
    if product.price > 0:
        similarity += 0.2 * max(0.0, 1 - product.price / 10000)

    return similarity


def temporal_similarity(interactions_a: Sequence[Interaction],
                        interactions_b: Sequence[Interaction]) -> float:
    """Exponential decay on the gap between the most recent interactions"""
    if not interactions_a or not interactions_b:
        return 0.0

    latest_a = max(interaction.timestamp for interaction in interactions_a)
    latest_b = max(interaction.timestamp for interaction in interactions_b)
    gap_hours = abs((latest_a - latest_b).total_seconds()) // 3600

    return math.exp(-gap_hours / TEMPORAL_DECAY_HOURS)


def weighted_similarity(similarities: Mapping[str, float],
                        weights: Optional[Mapping[str, float]] = None) -> float:
    """Weighted mean of named similarity measures; unknown measures weigh 1.0"""
    weights = weights or {}
    weighted_sum = 0.0
    total_weight = 0.0
    for name, value in similarities.items():
        weight = weights.get(name, 1.0)
        weighted_sum += value * weight
        total_weight += weight
    return weighted_sum / total_weight if total_weight > 0 else 0.0


def normalize_similarity(similarity: float) -> float:
    return max(0.0, min(1.0, similarity))


def user_vector(user_id: int, interactions: Iterable[Interaction]) -> Dict[int, float]:
    """product_id -> summed interaction weight for one user"""
    vector = defaultdict(float)
    for interaction in interactions:
        if interaction.user_id == user_id:
            vector[interaction.product_id] += interaction.weight
    return dict(vector)


def item_vector(product_id: int, interactions: Iterable[Interaction]) -> Dict[int, float]:
    """user_id -> summed interaction weight for one product"""
    vector = defaultdict(float)
    for interaction in interactions:
        if interaction.product_id == product_id:
            vector[interaction.user_id] += interaction.weight
    return dict(vector)


def most_similar_users(target_user_id: int,
                       user_vectors: Mapping[int, SparseVector],
                       k: int) -> List[Tuple[int, float]]:
    """Top-k (user_id, cosine) pairs against the target, ties by ascending id"""
    if target_user_id not in user_vectors:
        return []

    others = [user_id for user_id in user_vectors if user_id != target_user_id]
    if not others:
        return []

    matrix = align_vectors([user_vectors[target_user_id]] + [user_vectors[user_id] for user_id in others])
    if matrix.shape[1] == 0:
        scores = np.zeros(len(others))
    else:
        # Zero rows come out with similarity 0
        scores = cosine_similarity(matrix[0:1], matrix[1:]).flatten()

    similarities = [(user_id, float(score)) for user_id, score in zip(others, scores)]
    similarities.sort(key=lambda pair: (-pair[1], pair[0]))
    return similarities[:max(k, 0)]
