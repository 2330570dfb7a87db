"""
Data models for the ranking engine
"""

from .ids import UserId, ProductId, NodeKind, NodeKey
from .entities import User, Product, Interaction, InteractionType, INTERACTION_WEIGHTS
from .recommendation import (
    Recommendation, RecommendationAlgorithm, ScoreReason, rank_recommendations
)
from .schemas import UserInput, ProductInput, InteractionInput

__all__ = [
    'UserId',
    'ProductId',
    'NodeKind',
    'NodeKey',
    'User',
    'Product',
    'Interaction',
    'InteractionType',
    'INTERACTION_WEIGHTS',
    'Recommendation',
    'RecommendationAlgorithm',
    'ScoreReason',
    'rank_recommendations',
    'UserInput',
    'ProductInput',
    'InteractionInput',
]
