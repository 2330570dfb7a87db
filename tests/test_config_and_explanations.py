"""
Unit tests for environment configuration, logging setup and explanation rendering
"""

import os
from unittest.mock import patch

import structlog

import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from graphrec.config import get_engine_config, get_hybrid_weights_config
from graphrec.logging_config import configure_logging
from graphrec.models.recommendation import Recommendation, ScoreReason
from graphrec.services.explanations import ExplanationRenderer


class TestConfiguration:
    """Test cases for environment-driven configuration"""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = get_engine_config()

        assert config['default_k'] == 10
        assert config['bfs_depth'] == 2
        assert config['similar_item_threshold'] == 0.3

    def test_environment_overrides(self):
        with patch.dict(os.environ, {'GRAPHREC_BFS_DEPTH': '3', 'GRAPHREC_WEIGHT_CONTENT': '0.5'}):
            assert get_engine_config()['bfs_depth'] == 3
            assert get_hybrid_weights_config()['content'] == 0.5


class TestLogging:
    """Test cases for structlog configuration"""

    def test_configure_console_logging(self):
        configure_logging(level="debug", json_logs=False)
        logger = structlog.get_logger("graphrec.test")

        logger.info("Logging configured", component="test")
        assert structlog.is_configured()


class TestExplanationRenderer:
    """Test cases for reason rendering"""

    def setup_method(self):
        self.renderer = ExplanationRenderer()

    def test_clauses_are_joined(self):
        text = self.renderer.render([
            ScoreReason("category_match", "Books"),
            ScoreReason("brand_match", "Penguin"),
        ])

        assert text == ("Recommended because it matches your interest in Books, "
                        "is from Penguin which you like")

    def test_sentences_precede_clauses(self):
        text = self.renderer.render([
            ScoreReason("high_rating", value=4.6),
            ScoreReason("popular"),
        ])

        assert text == "Popular among all users; Recommended because it is highly rated (4.6/5)"

    def test_duplicates_and_unknown_codes(self):
        text = self.renderer.render([
            ScoreReason("similar_items"),
            ScoreReason("similar_items"),
            ScoreReason("seasonal_pick"),
        ])

        assert text == "Similar to products you've previously liked; Seasonal pick"

    def test_signals_reason(self):
        rec = Recommendation(1, 2, 0.5, "hybrid")
        rec.add_reason("signals", subject="collaborative, content")

        assert self.renderer.explain(rec).explanation == \
            "Recommended by collaborative, content algorithms"

    def test_no_reasons(self):
        assert self.renderer.render([]) == ""
