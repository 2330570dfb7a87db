"""
Engine Configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()


def get_engine_config():
    """Get scoring configuration from the environment"""
    return {
        'default_k': int(os.getenv('GRAPHREC_DEFAULT_K', '10')),
        'bfs_depth': int(os.getenv('GRAPHREC_BFS_DEPTH', '2')),
        'similar_user_count': int(os.getenv('GRAPHREC_SIMILAR_USER_COUNT', '20')),
        'similar_item_threshold': float(os.getenv('GRAPHREC_SIMILAR_ITEM_THRESHOLD', '0.3')),
        'batch_workers': int(os.getenv('GRAPHREC_BATCH_WORKERS', '4')),
        'batch_timeout_seconds': float(os.getenv('GRAPHREC_BATCH_TIMEOUT_SECONDS', '5.0')),
    }


def get_hybrid_weights_config():
    """Get default hybrid fusion weights (normalized by the combiner)"""
    return {
        'collaborative': float(os.getenv('GRAPHREC_WEIGHT_COLLABORATIVE', '0.4')),
        'content': float(os.getenv('GRAPHREC_WEIGHT_CONTENT', '0.3')),
        'popularity': float(os.getenv('GRAPHREC_WEIGHT_POPULARITY', '0.2')),
        'trending': float(os.getenv('GRAPHREC_WEIGHT_TRENDING', '0.1')),
    }


def get_matrix_factorization_config():
    """Get batch matrix factorization hyperparameters"""
    return {
        'n_factors': int(os.getenv('GRAPHREC_MF_FACTORS', '10')),
        'n_iterations': int(os.getenv('GRAPHREC_MF_ITERATIONS', '20')),
        'learning_rate': float(os.getenv('GRAPHREC_MF_LEARNING_RATE', '0.01')),
        'regularization': float(os.getenv('GRAPHREC_MF_REGULARIZATION', '0.01')),
        'seed': int(os.getenv('GRAPHREC_MF_SEED', '42')),
    }


LOGGING_CONFIG = {
    'level': os.getenv('GRAPHREC_LOG_LEVEL', 'INFO'),
    'json': os.getenv('GRAPHREC_LOG_JSON', 'true').lower() == 'true',
}

ENGINE_CONFIG = get_engine_config()
HYBRID_WEIGHTS_CONFIG = get_hybrid_weights_config()
MATRIX_FACTORIZATION_CONFIG = get_matrix_factorization_config()
