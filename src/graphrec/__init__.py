"""
graphrec - in-process catalog ranking engine

Graph-based collaborative filtering, content-feature similarity and
popularity signals fused into a bounded top-k ranking.
"""

from graphrec.errors import DegradedError, GraphRecError, InvalidArgumentError, NotFoundError
from graphrec.logging_config import configure_logging
from graphrec.services.recommendation_service import RecommendationService

__version__ = "1.0.0"

__all__ = [
    'RecommendationService',
    'configure_logging',
    'GraphRecError',
    'NotFoundError',
    'InvalidArgumentError',
    'DegradedError',
]
