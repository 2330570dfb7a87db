"""
Recommendation models for the ranking engine
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class RecommendationAlgorithm(str, Enum):
    """Tag of the strategy that produced a recommendation"""
    USER_COLLABORATIVE = "user_collaborative"
    ITEM_COLLABORATIVE = "item_collaborative"
    COLLABORATIVE_COMBINED = "collaborative_combined"
    MATRIX_FACTORIZATION = "matrix_factorization"
    CONTENT_BASED = "content_based"
    SIMILAR_CONTENT = "similar_content"
    TRENDING_CONTENT = "trending_content"
    POPULARITY = "popularity"
    TRENDING = "trending"
    HYBRID = "hybrid"
    SIMILAR_USERS = "similar_users"


@dataclass(frozen=True)
class ScoreReason:
    """Structured reason behind a score; rendered to text by the presentation layer"""
    code: str
    subject: Optional[str] = None
    value: Optional[float] = None


@dataclass
class Recommendation:
    """Scored candidate product for a user"""
    user_id: int
    product_id: int
    score: float
    algorithm: str
    components: Dict[str, float] = field(default_factory=dict)
    reasons: List[ScoreReason] = field(default_factory=list)
    explanation: str = ""
    rank: int = 0
    accepted: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def add_component(self, name: str, value: float):
        self.components[name] = value

    def get_component(self, name: str) -> float:
        return self.components.get(name, 0.0)

    def add_reason(self, code: str, subject: Optional[str] = None, value: Optional[float] = None):
        self.reasons.append(ScoreReason(code, subject, value))

    @property
    def sort_key(self):
        # Descending score, ascending product id on ties
        return (-self.score, self.product_id)

    @property
    def confidence(self) -> float:
        if not self.components:
            return self.score
        return min(1.0, sum(self.components.values()) / len(self.components))

    def is_high_confidence(self, threshold: float) -> bool:
        return self.confidence >= threshold

    def ranked(self, rank: int) -> "Recommendation":
        """Copy with the read-time rank set"""
        return replace(self, rank=rank, components=dict(self.components), reasons=list(self.reasons))


def rank_recommendations(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Sort by descending score and assign ranks 1..n"""
    ordered = sorted(recommendations, key=lambda rec: rec.sort_key)
    return [rec.ranked(idx) for idx, rec in enumerate(ordered, start=1)]
