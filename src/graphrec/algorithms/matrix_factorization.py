"""
Matrix Factorization using stochastic gradient descent
Learns latent user and product factors from the interaction log
"""

import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
import structlog

from graphrec.algorithms.base import degrade_to_empty
from graphrec.config import MATRIX_FACTORIZATION_CONFIG
from graphrec.core.graph import UserItemGraph
from graphrec.core.interaction_log import InteractionLog
from graphrec.core.top_k import TopKSelector
from graphrec.errors import DegradedError
from graphrec.models.ids import ProductId, UserId
from graphrec.models.recommendation import Recommendation, RecommendationAlgorithm

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FactorModel:
    """Id index maps and the factor matrices trained against them"""
    user_index: pd.Index
    item_index: pd.Index
    user_factors: np.ndarray
    item_factors: np.ndarray


class MatrixFactorization:
    """
    Batch SGD factorisation of the user-product weight matrix

    Factors are initialised from a seeded Gaussian (sigma 0.1), so two
    trainings over the same log produce identical factors. A finished
    training publishes one FactorModel; scoring reads whichever model was
    current when it started, so a retrain never mixes indexes and factors.
    """

    def __init__(self, graph: UserItemGraph, interaction_log: InteractionLog,
                 n_factors: Optional[int] = None,
                 n_iterations: Optional[int] = None,
                 learning_rate: Optional[float] = None,
                 regularization: Optional[float] = None,
                 seed: Optional[int] = None):
        config = MATRIX_FACTORIZATION_CONFIG
        self.graph = graph
        self.interaction_log = interaction_log
        self.n_factors = n_factors if n_factors is not None else config['n_factors']
        self.n_iterations = n_iterations if n_iterations is not None else config['n_iterations']
        self.learning_rate = learning_rate if learning_rate is not None else config['learning_rate']
        self.regularization = regularization if regularization is not None else config['regularization']
        self.seed = seed if seed is not None else config['seed']

        self.model: Optional[FactorModel] = None
        self._train_lock = threading.Lock()

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    @property
    def user_factors(self) -> Optional[np.ndarray]:
        model = self.model
        return model.user_factors if model is not None else None

    @property
    def item_factors(self) -> Optional[np.ndarray]:
        model = self.model
        return model.item_factors if model is not None else None

    def build_training_frame(self, user_index: pd.Index, item_index: pd.Index) -> pd.DataFrame:
        """Interaction log as (user_idx, item_idx, rating) rows in log order"""
        entries = self.interaction_log.snapshot()
        frame = pd.DataFrame({
            'user_id': [interaction.user_id for interaction in entries],
            'item_id': [interaction.product_id for interaction in entries],
            'rating': [interaction.weight for interaction in entries],
        }, columns=['user_id', 'item_id', 'rating'])

        frame['user_idx'] = user_index.get_indexer(frame['user_id'])
        frame['item_idx'] = item_index.get_indexer(frame['item_id'])

        # Rows for ids the graph never saw cannot be factorised
        return frame[(frame['user_idx'] >= 0) & (frame['item_idx'] >= 0)]

    def train(self) -> bool:
        """
        Run the full SGD schedule, blocking until done

        Raises:
            DegradedError: if the factors diverge to non-finite values
        """
        with self._train_lock:
            user_index = pd.Index(sorted(self.graph.users()), dtype='int64')
            item_index = pd.Index(sorted(self.graph.products()), dtype='int64')
            frame = self.build_training_frame(user_index, item_index)

            logger.info("Training matrix factorization model",
                        n_users=len(user_index),
                        n_items=len(item_index),
                        n_interactions=len(frame),
                        n_factors=self.n_factors)

            rng = np.random.default_rng(self.seed)
            user_factors = rng.normal(0.0, 0.1, (len(user_index), self.n_factors))
            item_factors = rng.normal(0.0, 0.1, (len(item_index), self.n_factors))

            rows = list(zip(frame['user_idx'].to_numpy(),
                            frame['item_idx'].to_numpy(),
                            frame['rating'].to_numpy(dtype=float)))

            with np.errstate(over='ignore', invalid='ignore'):
                for _ in range(self.n_iterations):
                    for user_idx, item_idx, rating in rows:
                        u = user_factors[user_idx].copy()
                        p = item_factors[item_idx].copy()
                        error = rating - np.dot(u, p)

                        user_factors[user_idx] += self.learning_rate * (error * p - self.regularization * u)
                        item_factors[item_idx] += self.learning_rate * (error * u - self.regularization * p)

            if not (np.all(np.isfinite(user_factors)) and np.all(np.isfinite(item_factors))):
                self.model = None
                logger.error("Matrix factorization diverged",
                             learning_rate=self.learning_rate,
                             n_iterations=self.n_iterations)
                raise DegradedError("matrix factorization produced non-finite factors")

            self.model = FactorModel(user_index, item_index, user_factors, item_factors)

            logger.info("Matrix factorization training complete",
                        user_factors_shape=user_factors.shape,
                        item_factors_shape=item_factors.shape)
            return True

    def predict(self, user_id: UserId, product_id: ProductId) -> float:
        model = self.model
        if model is None:
            return 0.0
        user_pos = model.user_index.get_indexer([user_id])[0]
        item_pos = model.item_index.get_indexer([product_id])[0]
        if user_pos < 0 or item_pos < 0:
            return 0.0
        return float(np.dot(model.user_factors[user_pos], model.item_factors[item_pos]))

    @degrade_to_empty("matrix_factorization")
    def recommend(self, user_id: UserId, top_k: int) -> List[Recommendation]:
        """Positive latent-factor scores over products the user has not interacted with"""
        model = self.model
        if model is None:
            logger.warning("Model not trained, training now", user_id=user_id)
            self.train()
            model = self.model

        user_pos = model.user_index.get_indexer([user_id])[0]
        if user_pos < 0:
            return []

        seen = self.graph.user_products(user_id)
        scores = model.item_factors @ model.user_factors[user_pos]

        selector = TopKSelector(top_k)
        for product_id, score in zip(model.item_index, scores):
            if product_id in seen or score <= 0:
                continue
            rec = Recommendation(user_id, int(product_id), float(score),
                                 RecommendationAlgorithm.MATRIX_FACTORIZATION.value)
            rec.add_component("latent_factors", float(score))
            rec.add_reason("latent_factors")
            selector.offer(rec)

        return selector.top_k()
