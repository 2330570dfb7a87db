"""
Recommendation algorithms package
"""

from .collaborative_filtering import CollaborativeFiltering
from .popularity_based import PopularityScorer
from .content_based_filtering import ContentBasedFiltering, price_bucket
from .matrix_factorization import MatrixFactorization
from .hybrid import HybridRecommender, HybridWeights

__all__ = [
    'CollaborativeFiltering',
    'PopularityScorer',
    'ContentBasedFiltering',
    'price_bucket',
    'MatrixFactorization',
    'HybridRecommender',
    'HybridWeights'
]
