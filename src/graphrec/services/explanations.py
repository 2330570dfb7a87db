"""
Human-readable explanations for scored recommendations
"""

from typing import Iterable, List

from graphrec.models.recommendation import Recommendation, ScoreReason

# Reasons that read as a clause after "Recommended because it ..."
CLAUSE_TEMPLATES = {
    'category_match': "matches your interest in {subject}",
    'brand_match': "is from {subject} which you like",
    'high_rating': "is highly rated ({value:.1f}/5)",
    'diverse_selection': "adds variety to your list",
}

# Reasons that stand on their own as a sentence
SENTENCE_TEMPLATES = {
    'similar_users': "Users with similar preferences also liked this product",
    'similar_items': "Similar to products you've previously liked",
    'latent_factors': "Based on latent factor analysis of your preferences",
    'profile_match': "Based on your browsing preferences",
    'popular': "Popular among all users",
    'liked_by_similar_users': "Liked by users with similar preferences",
}


class ExplanationRenderer:
    """Formats structured score reasons into one explanation string"""

    def render_reason(self, reason: ScoreReason) -> str:
        if reason.code in CLAUSE_TEMPLATES:
            return CLAUSE_TEMPLATES[reason.code].format(subject=reason.subject, value=reason.value or 0.0)
        if reason.code in SENTENCE_TEMPLATES:
            return SENTENCE_TEMPLATES[reason.code]
        if reason.code == 'similar_content':
            return f"Similar to products you've viewed in {reason.subject or 'your preferred categories'}"
        if reason.code == 'trending_in_category':
            return f"Trending in {reason.subject}, which matches your interests"
        if reason.code == 'signals':
            return f"Recommended by {reason.subject} algorithms"
        return reason.code.replace('_', ' ').capitalize()

    def render(self, reasons: Iterable[ScoreReason]) -> str:
        clauses: List[str] = []
        sentences: List[str] = []
        for reason in reasons:
            text = self.render_reason(reason)
            target = clauses if reason.code in CLAUSE_TEMPLATES else sentences
            if text not in target:
                target.append(text)

        parts = list(sentences)
        if clauses:
            parts.append("Recommended because it " + ", ".join(clauses))
        return "; ".join(parts)

    def explain(self, recommendation: Recommendation) -> Recommendation:
        """Fill in the explanation text in place"""
        recommendation.explanation = self.render(recommendation.reasons)
        return recommendation

    def explain_all(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        for recommendation in recommendations:
            self.explain(recommendation)
        return recommendations
