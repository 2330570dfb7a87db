"""
Recommendation services package
"""

from .recommendation_service import RecommendationService
from .explanations import ExplanationRenderer

__all__ = [
    'RecommendationService',
    'ExplanationRenderer'
]
